"""
Concrete OO-MDP environments.

The Taxi domain: a taxi on a walled 5x5 grid must pick up a passenger at
one stop and deliver them to another. Its rules are hidden from the
agent, which has to learn them through interaction.
"""

from oomdp.worlds.taxi_env import (
    Action,
    TaxiConfig,
    TaxiLayout,
    TaxiWorld,
    get_layout,
    make_environment,
    register_layout,
    taxi_schema,
)

__all__ = [
    "Action",
    "TaxiConfig",
    "TaxiLayout",
    "TaxiWorld",
    "get_layout",
    "make_environment",
    "register_layout",
    "taxi_schema",
]
