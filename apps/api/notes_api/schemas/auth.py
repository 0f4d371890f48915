"""Authentication schemas.

Claims only exist after a token has been verified: the verifiers are the sole
producers of these models.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class LocalClaims(BaseModel):
    """Claim set carried by self-issued access tokens."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["local"] = "local"
    user_id: str = Field(alias="_id", min_length=1)
    name: str
    email: str = Field(min_length=1)

    def token_payload(self) -> dict[str, str]:
        return self.model_dump(by_alias=True, exclude={"kind"})


class FederatedClaims(BaseModel):
    """Claims projected from a verified identity-provider token."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["federated"] = "federated"
    subject: str = Field(min_length=1)
    email: str = Field(min_length=1)
    name: str | None = None
    picture: str | None = None
    issuer: str


Claims = Annotated[Union[LocalClaims, FederatedClaims], Field(discriminator="kind")]
