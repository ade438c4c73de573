"""Identity model supplied by the identity provider."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """An opaque signed-in identity.

    Parameters
    ----------
    uid : str
        Stable user id; keys the private document path.
    is_anonymous : bool
        ``True`` until a federated credential is linked.
    display_name, photo_url, email : str or None
        Profile fields from the federated provider, when known.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    uid: str = Field(validation_alias=AliasChoices("uid", "localId"))
    is_anonymous: bool = Field(default=True, validation_alias=AliasChoices("is_anonymous", "isAnonymous"))
    display_name: str | None = Field(default=None, validation_alias=AliasChoices("display_name", "displayName"))
    photo_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("photo_url", "photoURL", "photoUrl"),
    )
    email: str | None = None
