"""Route Dependencies — per-request wiring of directory and engine services.

Invariants:
    - Routes receive services, never sessions or engines
    - get_directory and get_settings are the only override points (tests swap both)
"""

from fastapi import Depends

from binary_network.config import Settings, get_settings
from binary_network.core.repository_protocols import ReferralDirectory
from binary_network.infrastructure.database import get_db_manager
from binary_network.infrastructure.member_directory import SqlReferralDirectory
from binary_network.services.commission_propagator import CommissionPropagator
from binary_network.services.network_aggregator import NetworkAggregator
from binary_network.services.network_reports import NetworkReports
from binary_network.services.placement_resolver import PlacementResolver
from binary_network.services.registration import RegistrationOrchestrator


def get_directory() -> ReferralDirectory:
    return SqlReferralDirectory(get_db_manager())


def get_propagator(
    directory: ReferralDirectory = Depends(get_directory),
    settings: Settings = Depends(get_settings),
) -> CommissionPropagator:
    aggregator = NetworkAggregator(directory, settings.max_tree_depth)
    return CommissionPropagator(directory, aggregator, settings)


def get_orchestrator(
    directory: ReferralDirectory = Depends(get_directory),
    propagator: CommissionPropagator = Depends(get_propagator),
    settings: Settings = Depends(get_settings),
) -> RegistrationOrchestrator:
    resolver = PlacementResolver(directory, settings)
    return RegistrationOrchestrator(directory, resolver, propagator, settings)


def get_reports(
    directory: ReferralDirectory = Depends(get_directory),
    propagator: CommissionPropagator = Depends(get_propagator),
    settings: Settings = Depends(get_settings),
) -> NetworkReports:
    aggregator = NetworkAggregator(directory, settings.max_tree_depth)
    return NetworkReports(directory, aggregator, propagator, settings.max_tree_depth)
