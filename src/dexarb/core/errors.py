"""Exception hierarchy for the arbitrage engine."""


class DexArbError(Exception):
    """Base exception for engine errors."""


class PairNotFoundError(DexArbError):
    """No roster pair can execute a cycle hop."""

    def __init__(self, venue: str, asset_from: str, asset_to: str) -> None:
        super().__init__(f"No {venue} pair trades {asset_from}/{asset_to}")
        self.venue = venue
        self.asset_from = asset_from
        self.asset_to = asset_to


class PassCancelled(DexArbError):
    """Raised at a checkpoint when a newer observation superseded the pass."""
