"""Fund-transfer rail exports."""

from resources.adapters.fund_rail.adapter import (
    FundRailError,
    FundRailHealthResult,
    FundRailUnavailableError,
    FundTransfer,
    FundTransferRail,
)
from resources.adapters.fund_rail.component import MANIFEST, RESOURCE_COMPONENT_ID
from resources.adapters.fund_rail.config import FundRailSettings
from resources.adapters.fund_rail.memory_rail import InMemoryFundTransferRail
from resources.adapters.fund_rail.sql_rail import SqlFundTransferRail

__all__ = [
    "FundRailError",
    "FundRailHealthResult",
    "FundRailSettings",
    "FundRailUnavailableError",
    "FundTransfer",
    "FundTransferRail",
    "InMemoryFundTransferRail",
    "MANIFEST",
    "RESOURCE_COMPONENT_ID",
    "SqlFundTransferRail",
]
