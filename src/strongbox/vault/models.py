"""
Vault Data Models

Credentials and categories are plain records. Collections of them are
ordered lists with caller-enforced unique ids; the store never checks
that a credential's category_id points at an existing category.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import uuid4


def new_id() -> str:
    """Opaque unique id for a new entity."""
    return str(uuid4())


@dataclass
class Category:
    """A named group of credentials"""
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(id=data["id"], name=data["name"])


@dataclass
class CredentialInput:
    """Credential fields supplied by the user (everything except id)"""
    site: str
    username: str
    password: str
    category_id: Optional[str] = None


@dataclass
class Credential:
    """A stored site login"""
    id: str
    site: str
    username: str
    password: str
    category_id: Optional[str] = None  # soft reference to Category.id

    @classmethod
    def create(cls, data: CredentialInput) -> "Credential":
        return cls(
            id=new_id(),
            site=data.site,
            username=data.username,
            password=data.password,
            category_id=data.category_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Exchange form. categoryId is omitted when unset."""
        result = {
            "id": self.id,
            "site": self.site,
            "username": self.username,
            "password": self.password,
        }
        if self.category_id is not None:
            result["categoryId"] = self.category_id
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        return cls(
            id=data["id"],
            site=data["site"],
            username=data["username"],
            password=data["password"],
            category_id=data.get("categoryId"),
        )


# EncryptedStore codecs


def encode_credentials(items: List[Credential]) -> List[Dict[str, Any]]:
    return [c.to_dict() for c in items]


def decode_credentials(data: List[Dict[str, Any]]) -> List[Credential]:
    return [Credential.from_dict(d) for d in data]


def encode_categories(items: List[Category]) -> List[Dict[str, Any]]:
    return [c.to_dict() for c in items]


def decode_categories(data: List[Dict[str, Any]]) -> List[Category]:
    return [Category.from_dict(d) for d in data]
