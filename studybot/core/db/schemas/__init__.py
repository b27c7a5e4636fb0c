# Import models so Alembic and Base metadata are aware of them
from .auth import User  # noqa: F401
from .user_profile import UserProfile, PlanType  # noqa: F401
from .subjects import Subject  # noqa: F401
from .flashcards import FlashcardSet, GenerationStatus  # noqa: F401
from .usage import GenerationUsage  # noqa: F401
