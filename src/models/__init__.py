from .base import Base
from .access_code import AccessCodeModel

__all__ = ["Base", "AccessCodeModel"]
