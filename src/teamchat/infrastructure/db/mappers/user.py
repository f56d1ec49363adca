from __future__ import annotations

from teamchat.domain.entities.author import Author
from teamchat.infrastructure.db.models.user import UserModel


def model_to_author(model: UserModel) -> Author:
    name = " ".join(p for p in (model.first_name, model.last_name) if p)
    return Author(
        id=model.id,
        display_name=name or model.email or f"User {model.id}",
        email=model.email,
    )
