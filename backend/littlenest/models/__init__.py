"""ORM models. Importing this package registers every table with Base.metadata."""

from littlenest.models.blog import Blog
from littlenest.models.name import Name

__all__ = ["Blog", "Name"]
