from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from studybot.modules.flashcards.normalizer import normalize_response
from studybot.modules.flashcards.prompt import build_prompt


def _load_notes(args: argparse.Namespace) -> str:
    if args.notes and args.notes_file:
        raise SystemExit("Provide either --notes or --notes-file, not both")
    if args.notes_file:
        notes = Path(args.notes_file).read_text(encoding="utf-8")
    elif args.notes:
        notes = args.notes
    else:
        raise SystemExit("--notes or --notes-file is required")
    notes = notes.strip()
    if not notes:
        raise SystemExit("Notes are empty")
    return notes


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--notes", "-n", help="Study notes (text)")
    p.add_argument("--notes-file", help="Path to a file containing the notes")
    p.add_argument("--subject", "-s", help="Optional subject label")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="studybot-cards", description="Study notes to flashcards CLI"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    g = sub.add_parser("generate", help="Generate flashcards with the configured model")
    _add_common(g)

    n = sub.add_parser(
        "normalize",
        help="Build flashcards from the notes alone (no model call)",
    )
    _add_common(n)
    n.add_argument(
        "--raw", help="Raw model output to normalize alongside the notes", default=None
    )

    args = parser.parse_args(argv)
    notes = _load_notes(args)

    if args.cmd == "generate":
        from studybot.core.errors import UpstreamFailure
        from studybot.modules.flashcards.generator import AgentTextGenerator

        try:
            raw = AgentTextGenerator().generate_sync(build_prompt(notes, args.subject))
        except UpstreamFailure as e:
            print(f"{e.error}: {e.detail or '-'}", file=sys.stderr)
            return 1
    else:
        raw = args.raw

    cards = normalize_response(raw, notes, args.subject)
    print(json.dumps([c.model_dump() for c in cards], indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
