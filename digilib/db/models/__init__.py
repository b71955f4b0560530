"""ORM models aggregate exports (library backend tables)."""
from .library import (  # noqa: F401
	Base,
	AuthUser,
	UserProfile,
	Category,
	Book,
	ReadingProgress,
	BookAccess,
)

__all__ = [
	"Base",
	"AuthUser",
	"UserProfile",
	"Category",
	"Book",
	"ReadingProgress",
	"BookAccess",
]
