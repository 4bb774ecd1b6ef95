"""
OO-MDP: object-oriented model learning and optimistic planning.

Learns a compact, per-attribute transition model of an object-oriented
MDP from observed transitions (DOORmax), and plans with it by R-Max
style value iteration, where anything the model does not yet know is
treated as maximally rewarding.
"""

from oomdp.errors import (Cancelled, DomainViolation, EpisodeNotStarted,
                          IllegalAction, OOMDPError, SchemaError)
from oomdp.utils import StepBudget
from oomdp.schema import Attribute, ObjectClass, Relation, Schema
from oomdp.state import ObjectInstance, State
from oomdp.relations import Condition, Literal, Proposition, RelationEvaluator
from oomdp.effects import Effect, EffectKind
from oomdp.effect_model import EffectModel, EffectRecord, EntryStatus
from oomdp.doormax import DoormaxLearner, LearnerConfig, make_learner
from oomdp.rewards import RewardEntry, RewardTable
from oomdp.planner import PlannerConfig, ValueIterationPlanner, make_planner
from oomdp.agent import Agent, AgentConfig, EpisodeLog, Probe, TrainingResult
from oomdp.worlds.taxi_env import (Action, TaxiConfig, TaxiWorld,
                                   make_environment, taxi_schema)

__version__ = "0.1.0"
__all__ = [
    "OOMDPError",
    "SchemaError",
    "IllegalAction",
    "DomainViolation",
    "Cancelled",
    "EpisodeNotStarted",
    "StepBudget",
    "Attribute",
    "ObjectClass",
    "Relation",
    "Schema",
    "ObjectInstance",
    "State",
    "Proposition",
    "Literal",
    "Condition",
    "RelationEvaluator",
    "Effect",
    "EffectKind",
    "EntryStatus",
    "EffectRecord",
    "EffectModel",
    "LearnerConfig",
    "DoormaxLearner",
    "make_learner",
    "RewardEntry",
    "RewardTable",
    "PlannerConfig",
    "ValueIterationPlanner",
    "make_planner",
    "Agent",
    "AgentConfig",
    "EpisodeLog",
    "Probe",
    "TrainingResult",
    "Action",
    "TaxiConfig",
    "TaxiWorld",
    "taxi_schema",
    "make_environment",
]
