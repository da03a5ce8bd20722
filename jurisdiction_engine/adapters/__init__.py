"""Source adapters, one per government tier.

Exports:
    SourceAdapter        -- capability interface (fetch_by_zip)
    CongressGovAdapter   -- federal tier
    OpenStatesAdapter    -- state tier
    LocalRegistryAdapter -- local (county + municipal) tier
    build_default_adapters -- tier -> adapter mapping from config
"""

from jurisdiction_engine.adapters.base import SourceAdapter
from jurisdiction_engine.adapters.federal import CongressGovAdapter
from jurisdiction_engine.adapters.local import LocalRegistryAdapter
from jurisdiction_engine.adapters.state import OpenStatesAdapter
from jurisdiction_engine.schemas.models import Tier


def build_default_adapters(config: dict) -> dict[Tier, SourceAdapter]:
    """Instantiate the production adapter for every tier."""
    return {
        Tier.FEDERAL: CongressGovAdapter(config),
        Tier.STATE: OpenStatesAdapter(config),
        Tier.LOCAL: LocalRegistryAdapter(config),
    }


__all__ = [
    "CongressGovAdapter",
    "LocalRegistryAdapter",
    "OpenStatesAdapter",
    "SourceAdapter",
    "build_default_adapters",
]
