"""
The Taxi domain as an object-oriented MDP.

A taxi moves on a 5x5 grid with internal walls, picks up a passenger
waiting at one of four stops and drops them off at a different stop.

Objects (ids are fixed):
- taxi#0: x, y
- passenger#1: x, y, in_taxi (x, y stay at the pickup stop while riding)
- destination#2: x, y
- wall#3: layout (names the static wall layout)

Relations:
- touch_n/s/e/w(taxi, wall): a wall or the grid edge is on that side
- on(taxi, passenger), on(taxi, destination): same cell
- in_taxi(passenger)

Coordinates are (x, y) = (column, row) with row 0 at the top, so North
decreases y. The agent does NOT know the rules — the learner must
discover them through ``step``.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Set, Tuple, Union

import numpy as np

from oomdp.errors import EpisodeNotStarted, IllegalAction, SchemaError
from oomdp.schema import BOOLEAN_DOMAIN, Schema, integer_domain
from oomdp.state import ObjectInstance, State

TAXI = 0
PASSENGER = 1
DESTINATION = 2
WALL = 3

Position = Tuple[int, int]


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

class Action(IntEnum):
    """The closed Taxi action set, in tie-break order."""
    NORTH = 0
    SOUTH = 1
    EAST = 2
    WEST = 3
    PICKUP = 4
    DROPOFF = 5

    def delta(self) -> Position:
        """x, y displacement for a move action."""
        return {
            Action.NORTH: (0, -1),
            Action.SOUTH: (0, 1),
            Action.EAST: (1, 0),
            Action.WEST: (-1, 0),
        }.get(self, (0, 0))

    @property
    def is_move(self) -> bool:
        return self <= Action.WEST

    @property
    def symbol(self) -> str:
        return self.name.capitalize()

    def __str__(self) -> str:
        return self.symbol

    @staticmethod
    def all() -> List["Action"]:
        return list(Action)

    @staticmethod
    def parse(value: Union["Action", str]) -> "Action":
        """Accept an Action or its symbol ("North", "pickup", ...)."""
        if isinstance(value, Action):
            return value
        if isinstance(value, str) and value.upper() in Action.__members__:
            return Action[value.upper()]
        raise IllegalAction(value)


# ---------------------------------------------------------------------------
# Layouts
# ---------------------------------------------------------------------------

@dataclass
class TaxiLayout:
    """
    Static grid geometry: size, stops and walls.

    ``walls`` holds cells with a wall on their east side; the grid edge
    always blocks. ``blocked`` is a [direction, y, x] boolean mask.
    """
    name: str
    cols: int
    rows: int
    stops: Dict[str, Position]
    walls: Set[Position] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.blocked = np.zeros((4, self.rows, self.cols), dtype=bool)
        self.blocked[Action.NORTH, 0, :] = True
        self.blocked[Action.SOUTH, self.rows - 1, :] = True
        self.blocked[Action.EAST, :, self.cols - 1] = True
        self.blocked[Action.WEST, :, 0] = True
        for x, y in self.walls:
            self.blocked[Action.EAST, y, x] = True
            if x + 1 < self.cols:
                self.blocked[Action.WEST, y, x + 1] = True

    def is_blocked(self, x: int, y: int, direction: Action) -> bool:
        return bool(self.blocked[direction, y, x])

    def stop_name(self, position: Position) -> Optional[str]:
        for name, pos in self.stops.items():
            if pos == position:
                return name
        return None

    @classmethod
    def from_string(cls, name: str, source: str) -> "TaxiLayout":
        """
        Parse the classic ASCII map::

            +---------+
            |R: | : :G|
            | : | : : |
            | : : : : |
            | | : | : |
            |Y| : |B: |
            +---------+

        Cells sit at odd columns, separators between them are ':' (open)
        or '|' (wall). Letters mark stops.
        """
        lines = [ln.strip() for ln in source.strip().splitlines() if ln.strip()]
        if len(lines) < 3:
            raise SchemaError(f"Layout '{name}' needs a border and at least one row")
        body = [ln for ln in lines if not ln.startswith("+")]
        width = len(body[0])
        if width < 3 or width % 2 == 0:
            raise SchemaError(f"Layout '{name}' has a malformed row: {body[0]!r}")
        cols = (width - 1) // 2
        stops: Dict[str, Position] = {}
        walls: Set[Position] = set()
        for y, line in enumerate(body):
            if len(line) != width:
                raise SchemaError(
                    f"Layout '{name}': row {y} has width {len(line)}, expected {width}"
                )
            for x in range(cols):
                cell = line[1 + 2 * x]
                if cell.isalpha():
                    if cell in stops:
                        raise SchemaError(f"Layout '{name}': stop {cell} appears twice")
                    stops[cell] = (x, y)
                elif cell != " ":
                    raise SchemaError(f"Layout '{name}': unknown cell {cell!r} at {(x, y)}")
                if x < cols - 1 and line[2 + 2 * x] == "|":
                    walls.add((x, y))
        if len(stops) < 2:
            raise SchemaError(f"Layout '{name}' needs at least two stops")
        return cls(name=name, cols=cols, rows=len(body), stops=stops, walls=walls)


STANDARD_MAP = """
+---------+
|R: | : :G|
| : | : : |
| : : : : |
| | : | : |
|Y| : |B: |
+---------+
"""

LAYOUTS: Dict[str, TaxiLayout] = {}


def register_layout(layout: TaxiLayout) -> TaxiLayout:
    LAYOUTS[layout.name] = layout
    return layout


def get_layout(name: str) -> TaxiLayout:
    if name not in LAYOUTS:
        raise SchemaError(f"Unknown layout '{name}'")
    return LAYOUTS[name]


STANDARD_LAYOUT = register_layout(TaxiLayout.from_string("standard", STANDARD_MAP))


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

def _touch(direction: Action):
    def touches(taxi: ObjectInstance, wall: ObjectInstance) -> bool:
        return get_layout(wall["layout"]).is_blocked(taxi["x"], taxi["y"], direction)
    touches.__name__ = f"touch_{direction.name[0].lower()}"
    return touches


def _same_cell(a: ObjectInstance, b: ObjectInstance) -> bool:
    return a["x"] == b["x"] and a["y"] == b["y"]


def taxi_schema(layout: TaxiLayout = STANDARD_LAYOUT) -> Schema:
    """The frozen Taxi schema for one layout."""
    xs = integer_domain(0, layout.cols)
    ys = integer_domain(0, layout.rows)
    schema = Schema()
    schema.declare_class("taxi", [("x", xs), ("y", ys)])
    schema.declare_class("passenger", [("x", xs), ("y", ys),
                                       ("in_taxi", BOOLEAN_DOMAIN)])
    schema.declare_class("destination", [("x", xs), ("y", ys)])
    schema.declare_class("wall", [("layout", (layout.name,))])
    for direction in (Action.NORTH, Action.SOUTH, Action.EAST, Action.WEST):
        schema.declare_relation(f"touch_{direction.name[0].lower()}",
                                ("taxi", "wall"), _touch(direction))
    schema.declare_relation("on", ("taxi", "passenger"), _same_cell)
    schema.declare_relation("on", ("taxi", "destination"), _same_cell)
    schema.declare_relation("in_taxi", ("passenger",), lambda p: p["in_taxi"])
    return schema.freeze()


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

@dataclass
class TaxiConfig:
    """Configuration for building a Taxi world."""
    layout: str = "standard"
    step_reward: float = -1.0
    illegal_reward: float = -10.0
    delivery_reward: float = 20.0
    max_steps: Optional[int] = None  # truncation; None = unlimited


class TaxiWorld:
    """
    The Taxi environment.

    ``transition`` is the true, pure transition and reward function;
    ``step`` applies it to the current state. The random source is
    injected so that a seed fixes every episode start.
    """

    def __init__(self, config: Optional[TaxiConfig] = None,
                 rng: Optional[random.Random] = None):
        self.config = config or TaxiConfig()
        self.layout = get_layout(self.config.layout)
        self.schema = taxi_schema(self.layout)
        self.rng = rng if rng is not None else random.Random()
        self.state: Optional[State] = None
        self.steps = 0
        self.total_reward = 0.0
        self.terminal = False
        self.truncated = False

    @property
    def actions(self) -> List[Action]:
        return Action.all()

    @property
    def max_reward(self) -> float:
        return max(self.config.delivery_reward, self.config.step_reward)

    @property
    def done(self) -> bool:
        return self.terminal or self.truncated

    # -- state construction --------------------------------------------------

    def _position(self, where: Union[str, Position]) -> Position:
        if isinstance(where, str):
            if where not in self.layout.stops:
                raise SchemaError(f"Unknown stop '{where}'")
            return self.layout.stops[where]
        return (int(where[0]), int(where[1]))

    def make_state(self, taxi: Position, passenger: Union[str, Position],
                   destination: Union[str, Position],
                   in_taxi: bool = False) -> State:
        """Build a validated state from positions or stop names."""
        tx, ty = self._position(taxi)
        px, py = self._position(passenger)
        dx, dy = self._position(destination)
        return State.from_attribute_map(self.schema, {
            TAXI: ("taxi", {"x": tx, "y": ty}),
            PASSENGER: ("passenger", {"x": px, "y": py, "in_taxi": in_taxi}),
            DESTINATION: ("destination", {"x": dx, "y": dy}),
            WALL: ("wall", {"layout": self.layout.name}),
        })

    def random_state(self) -> State:
        """Taxi on a uniform cell, passenger and destination on distinct stops."""
        taxi = (self.rng.randrange(self.layout.cols),
                self.rng.randrange(self.layout.rows))
        names = list(self.layout.stops)
        passenger = self.rng.choice(names)
        destination = self.rng.choice([n for n in names if n != passenger])
        return self.make_state(taxi, passenger, destination)

    def reset(self) -> State:
        """Start a new episode from a random state."""
        return self.begin(self.random_state())

    def reset_to(self, taxi: Position, passenger: Union[str, Position],
                 destination: Union[str, Position],
                 in_taxi: bool = False) -> State:
        """Start a new episode from a specific configuration."""
        return self.begin(self.make_state(taxi, passenger, destination, in_taxi))

    def begin(self, state: State) -> State:
        self.state = state
        self.steps = 0
        self.total_reward = 0.0
        self.terminal = False
        self.truncated = False
        return state

    # -- dynamics ------------------------------------------------------------

    def transition(self, state: State,
                   action: Union[Action, str]) -> Tuple[State, float, bool]:
        """Apply the true rules: (next_state, reward, terminal)."""
        action = Action.parse(action)
        c = self.config
        taxi = state.object(TAXI)
        passenger = state.object(PASSENGER)
        destination = state.object(DESTINATION)
        x, y = taxi["x"], taxi["y"]

        if action.is_move:
            if self.layout.is_blocked(x, y, action):
                return state, c.step_reward, False
            dx, dy = action.delta()
            next_state = state.with_values({(TAXI, "x"): x + dx, (TAXI, "y"): y + dy})
            next_state.validate(self.schema, witness=state)
            return next_state, c.step_reward, False

        if action == Action.PICKUP:
            if not passenger["in_taxi"] and _same_cell(taxi, passenger):
                return state.with_values({(PASSENGER, "in_taxi"): True}), c.step_reward, False
            return state, c.illegal_reward, False

        # Dropoff
        if passenger["in_taxi"] and _same_cell(taxi, destination):
            return (state.with_values({(PASSENGER, "in_taxi"): False}),
                    c.delivery_reward, True)
        return state, c.illegal_reward, False

    def step(self, action: Union[Action, str]) -> Tuple[State, float, bool]:
        """
        Take an action in the current episode.

        Returns (next_state, reward, terminal). Stepping a finished episode
        is a no-op with zero reward. Raises ``EpisodeNotStarted`` before the
        first ``reset``.
        """
        action = Action.parse(action)
        if self.state is None:
            raise EpisodeNotStarted("call reset() before step()")
        if self.done:
            return self.state, 0.0, self.terminal

        next_state, reward, terminal = self.transition(self.state, action)
        self.state = next_state
        self.steps += 1
        self.total_reward += reward
        self.terminal = terminal
        if (not terminal and self.config.max_steps is not None
                and self.steps >= self.config.max_steps):
            self.truncated = True
        return next_state, reward, terminal


def make_environment(seed: Optional[int] = None,
                     config: Optional[TaxiConfig] = None) -> TaxiWorld:
    """A Taxi world whose episode starts are fixed by ``seed``."""
    return TaxiWorld(config, rng=random.Random(seed))
