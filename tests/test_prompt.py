from studybot.modules.flashcards.prompt import build_prompt


def test_notes_embedded_verbatim():
    notes = 'Mitochondria are the "powerhouse" of the cell.\n{not: escaped}'
    prompt = build_prompt(notes)

    assert prompt.endswith(f"Notes:\n{notes}")
    assert '"question"' in prompt and '"answer"' in prompt
    assert "subject" not in prompt


def test_subject_mentioned_when_given():
    assert "for the subject 'Biology'" in build_prompt("Cells divide.", "Biology")
