"""
States — immutable snapshots of every object instance and its attributes.

A state is a flat, id-keyed record: relations refer to objects by integer
id, never by handle. Two states are equal iff they hold the same ids,
each bound to the same class with identical attribute values. The
canonical key (sorted by id) drives equality, hashing and the stable
``digest()`` used to checkpoint tables outside the process.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple)

from oomdp.errors import DomainViolation, SchemaError
from oomdp.schema import Schema
from oomdp.utils import stable_digest


@dataclass(frozen=True)
class ObjectInstance:
    """One object: its id, its class, and its attribute values in order."""
    oid: int
    class_name: str
    values: Tuple[Tuple[str, Any], ...]

    def __getitem__(self, attribute: str) -> Any:
        for name, value in self.values:
            if name == attribute:
                return value
        raise KeyError(f"{self.class_name}#{self.oid} has no attribute '{attribute}'")

    def get(self, attribute: str, default: Any = None) -> Any:
        try:
            return self[attribute]
        except KeyError:
            return default

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.values)

    def replace(self, **changes: Any) -> ObjectInstance:
        unknown = set(changes) - {name for name, _ in self.values}
        if unknown:
            raise KeyError(f"{self.class_name}#{self.oid} has no attributes {sorted(unknown)}")
        values = tuple((name, changes.get(name, value)) for name, value in self.values)
        return ObjectInstance(self.oid, self.class_name, values)

    def __str__(self) -> str:
        attrs = ", ".join(f"{n}={v!r}" for n, v in self.values)
        return f"{self.class_name}#{self.oid}({attrs})"


class State:
    """
    An ordered collection of object instances keyed by id.

    Never mutated after construction; ``with_values`` returns a new state.
    """

    __slots__ = ("_objects", "_key", "_hash")

    def __init__(self, objects: Iterable[ObjectInstance]):
        by_id: Dict[int, ObjectInstance] = {}
        for obj in objects:
            if obj.oid in by_id:
                raise ValueError(f"Duplicate object id {obj.oid}")
            by_id[obj.oid] = obj
        self._objects: Dict[int, ObjectInstance] = {
            oid: by_id[oid] for oid in sorted(by_id)
        }
        self._key = tuple(
            (o.oid, o.class_name, o.values) for o in self._objects.values()
        )
        self._hash = hash(self._key)

    @classmethod
    def from_attribute_map(cls, schema: Schema,
                           objects: Mapping[int, Tuple[str, Mapping[str, Any]]]
                           ) -> State:
        """
        Build a validated state from ``{oid: (class_name, {attr: value})}``.

        Every declared attribute must be given, and lie in its domain.
        """
        instances = []
        for oid, (class_name, values) in objects.items():
            obj_cls = schema.get_class(class_name)
            missing = [a for a in obj_cls.attribute_names if a not in values]
            extra = [a for a in values if a not in obj_cls.attribute_names]
            if missing or extra:
                raise SchemaError(
                    f"{class_name}#{oid}: missing attributes {missing}, "
                    f"unknown attributes {extra}"
                )
            ordered = tuple((a, values[a]) for a in obj_cls.attribute_names)
            instances.append(ObjectInstance(oid, class_name, ordered))
        state = cls(instances)
        state.validate(schema)
        return state

    # -- access --------------------------------------------------------------

    def get(self, oid: int, attribute: str) -> Any:
        return self.object(oid)[attribute]

    def object(self, oid: int) -> ObjectInstance:
        if oid not in self._objects:
            raise KeyError(f"No object with id {oid}")
        return self._objects[oid]

    def objects(self) -> Iterator[ObjectInstance]:
        """All objects in id order."""
        return iter(self._objects.values())

    def objects_of_class(self, class_name: str) -> Iterator[ObjectInstance]:
        return (o for o in self._objects.values() if o.class_name == class_name)

    @property
    def ids(self) -> Tuple[int, ...]:
        return tuple(self._objects)

    def class_of(self, oid: int) -> str:
        return self.object(oid).class_name

    def with_values(self, changes: Mapping[Tuple[int, str], Any]) -> State:
        """Copy of this state with ``{(oid, attribute): value}`` applied."""
        if not changes:
            return self
        per_object: Dict[int, Dict[str, Any]] = {}
        for (oid, attribute), value in changes.items():
            per_object.setdefault(oid, {})[attribute] = value
        return State(
            obj.replace(**per_object[obj.oid]) if obj.oid in per_object else obj
            for obj in self._objects.values()
        )

    def validate(self, schema: Schema, witness: Optional[Any] = None) -> None:
        """Raise ``DomainViolation`` if any value leaves its declared domain."""
        for obj in self._objects.values():
            obj_cls = schema.get_class(obj.class_name)
            for name, value in obj.values:
                if not obj_cls.attribute(name).contains(value):
                    raise DomainViolation(
                        f"{obj.class_name}#{obj.oid}.{name}={value!r} is outside its domain",
                        witness=witness if witness is not None else self,
                    )

    # -- identity ------------------------------------------------------------

    def canonical_key(self) -> Tuple:
        return self._key

    def digest(self) -> str:
        """Hash of the canonical serialisation, stable across processes."""
        return stable_digest(self._key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, State):
            return NotImplemented
        return self._hash == other._hash and self._key == other._key

    def __hash__(self) -> int:
        return self._hash

    def __lt__(self, other: State) -> bool:
        return self._key < other._key

    def __len__(self) -> int:
        return len(self._objects)

    def __repr__(self) -> str:
        return "State(" + ", ".join(str(o) for o in self._objects.values()) + ")"
