"""
HTTP routes for the PINNLO API.
"""

from fastapi import APIRouter

from pinnlo.routes import (
    automation,
    blueprints,
    cards,
    development_bank,
    edit_mode,
    generation,
    intelligence,
    intelligence_processing,
    strategies,
    strategy_creator,
    system,
    users,
)

router = APIRouter()
for module in (
    users,
    strategies,
    cards,
    intelligence,
    intelligence_processing,
    generation,
    edit_mode,
    strategy_creator,
    development_bank,
    automation,
    system,
    blueprints,
):
    router.include_router(module.router)
