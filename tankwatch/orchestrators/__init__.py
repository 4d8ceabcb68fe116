"""Orchestrator layer for running the services across a fleet."""

from .fleet_orchestrator import (
    AssetPrediction,
    AssetReadings,
    FleetOrchestrator,
    FleetPredictionResult,
)

__all__ = [
    "AssetPrediction",
    "AssetReadings",
    "FleetOrchestrator",
    "FleetPredictionResult",
]
