"""Base model for the CBTC SDK."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class CbtcModel(BaseModel):
    """Base model with common configuration.

    Ledger and registry payloads are camelCase; models declare snake_case
    fields with camelCase aliases and serialize by alias.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to its wire dictionary."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
