"""SQLModel database models for familyvault."""

from familyvault.models.families import Family, FamilyBase, User, UserBase
from familyvault.models.files import File, FileBase
from familyvault.models.folders import Folder, FolderBase

__all__ = [
    "Family",
    "FamilyBase",
    "File",
    "FileBase",
    "Folder",
    "FolderBase",
    "User",
    "UserBase",
]
