"""Trading signal model."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Signal(BaseModel):
    """Immutable signal record held by the ledger."""

    model_config = ConfigDict(frozen=True)

    id: int
    asset: str
    signal: str  # direction/action, e.g. "buy" or "sell"
    timestamp: datetime
    source: str  # provenance: which ingress path produced it


class IngressPolicy(BaseModel):
    """How one ingress endpoint records signals."""

    model_config = ConfigDict(frozen=True)

    source: str
    normalize: bool = False

    def apply(self, asset: str, direction: str) -> tuple[str, str]:
        """Return (asset, direction) with this path's casing applied."""
        if self.normalize:
            return asset.upper(), direction.lower()
        return asset, direction
