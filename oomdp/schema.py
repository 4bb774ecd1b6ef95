"""
Schema registry — object classes, their attribute domains, and relations.

A schema is built by declaring classes and relations, then frozen. After
freezing it is the sole reference for typing: states are validated
against it and the relation evaluator grounds its relations over it.

Relations are predicates over a fixed tuple of classes. The predicate body
is a small pure function of the argument objects' attribute values::

    schema.declare_relation("on", ("taxi", "passenger"),
                            lambda t, p: (t["x"], t["y"]) == (p["x"], p["y"]))

A relation name may be declared over several class tuples (``on(taxi,
passenger)`` and ``on(taxi, destination)``); the pair (name, classes) must
be unique.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (Any, Callable, Dict, Iterable, List, Mapping, Optional,
                    Sequence, Tuple, Union)

from oomdp.effects import EffectKind, default_kinds
from oomdp.errors import SchemaError


def integer_domain(low: int, high: int) -> Tuple[int, ...]:
    """Integers in [low, high)."""
    return tuple(range(low, high))


BOOLEAN_DOMAIN: Tuple[bool, ...] = (False, True)


@dataclass(frozen=True)
class Attribute:
    """An attribute name with a finite, closed domain."""
    name: str
    domain: Tuple[Any, ...]
    effect_kinds: Optional[Tuple[EffectKind, ...]] = None

    def __post_init__(self) -> None:
        if not self.domain:
            raise SchemaError(f"Attribute '{self.name}' has an empty domain")
        object.__setattr__(self, "domain", tuple(self.domain))
        if self.effect_kinds is None:
            object.__setattr__(self, "effect_kinds", default_kinds(self.domain))
        else:
            kinds = tuple(sorted(set(EffectKind(k) for k in self.effect_kinds)))
            if not kinds:
                raise SchemaError(f"Attribute '{self.name}' admits no effect kinds")
            object.__setattr__(self, "effect_kinds", kinds)

    def contains(self, value: Any) -> bool:
        # bool is an int subclass; keep True out of {0, 1} domains and back
        for v in self.domain:
            if v == value and isinstance(v, bool) == isinstance(value, bool):
                return True
        return False


@dataclass(frozen=True)
class ObjectClass:
    """A class name and its ordered attribute declarations."""
    name: str
    attributes: Tuple[Attribute, ...]

    @property
    def attribute_names(self) -> Tuple[str, ...]:
        return tuple(a.name for a in self.attributes)

    def attribute(self, name: str) -> Attribute:
        for a in self.attributes:
            if a.name == name:
                return a
        raise SchemaError(f"Class '{self.name}' has no attribute '{name}'")


@dataclass(frozen=True)
class Relation:
    """A named predicate over a fixed tuple of classes."""
    name: str
    classes: Tuple[str, ...]
    predicate: Callable[..., bool] = field(compare=False, repr=False)

    @property
    def arity(self) -> int:
        return len(self.classes)

    @property
    def key(self) -> Tuple[str, Tuple[str, ...]]:
        return (self.name, self.classes)

    def __str__(self) -> str:
        return f"{self.name}({', '.join(self.classes)})"


AttributeSpec = Union[Attribute, Tuple[str, Sequence[Any]]]


class Schema:
    """
    Registry of object classes and relations.

    Declarations are only accepted until ``freeze()`` is called.
    """

    def __init__(self):
        self._classes: Dict[str, ObjectClass] = {}
        self._relations: Dict[Tuple[str, Tuple[str, ...]], Relation] = {}
        self._frozen = False

    # -- declaration -------------------------------------------------------

    def declare_class(self, name: str,
                      attributes: Iterable[AttributeSpec]) -> ObjectClass:
        """
        Declare an object class.

        ``attributes`` holds ``Attribute`` objects or ``(name, domain)`` pairs.
        """
        self._check_open()
        if name in self._classes:
            raise SchemaError(f"Class '{name}' declared twice")
        attrs: List[Attribute] = []
        for spec in attributes:
            attr = spec if isinstance(spec, Attribute) else Attribute(spec[0], tuple(spec[1]))
            if any(a.name == attr.name for a in attrs):
                raise SchemaError(f"Class '{name}' declares attribute '{attr.name}' twice")
            attrs.append(attr)
        if not attrs:
            raise SchemaError(f"Class '{name}' declares no attributes")
        cls = ObjectClass(name, tuple(attrs))
        self._classes[name] = cls
        return cls

    def declare_relation(self, name: str, classes: Sequence[str],
                         predicate: Callable[..., bool]) -> Relation:
        self._check_open()
        classes = tuple(classes)
        if not classes:
            raise SchemaError(f"Relation '{name}' has no arguments")
        for c in classes:
            if c not in self._classes:
                raise SchemaError(f"Relation '{name}' references unknown class '{c}'")
        if not callable(predicate):
            raise SchemaError(f"Relation '{name}' needs a callable predicate")
        relation = Relation(name, classes, predicate)
        if relation.key in self._relations:
            raise SchemaError(f"Relation {relation} declared twice")
        self._relations[relation.key] = relation
        return relation

    def freeze(self) -> Schema:
        if not self._classes:
            raise SchemaError("Cannot freeze an empty schema")
        self._frozen = True
        return self

    def _check_open(self) -> None:
        if self._frozen:
            raise SchemaError("Schema is frozen")

    # -- queries -------------------------------------------------------------

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def classes(self) -> Tuple[ObjectClass, ...]:
        return tuple(self._classes.values())

    @property
    def relations(self) -> Tuple[Relation, ...]:
        """Relations in canonical (name, classes) order."""
        return tuple(self._relations[k] for k in sorted(self._relations))

    def get_class(self, name: str) -> ObjectClass:
        if name not in self._classes:
            raise SchemaError(f"Unknown class '{name}'")
        return self._classes[name]

    def has_class(self, name: str) -> bool:
        return name in self._classes

    def admissible_kinds(self, class_name: str,
                         attribute: str) -> Tuple[EffectKind, ...]:
        return self.get_class(class_name).attribute(attribute).effect_kinds

    # -- declarative construction ------------------------------------------------

    @classmethod
    def from_description(cls, description: Mapping[str, Any]) -> Schema:
        """
        Build and freeze a schema from a declarative description::

            {
                "classes": {"taxi": {"x": range(5), "y": range(5)}},
                "relations": [("touch_n", ("taxi", "wall"), touch_north)],
            }

        Attribute values may be a domain sequence or an ``Attribute``.
        """
        schema = cls()
        classes = description.get("classes", {})
        for class_name, attrs in classes.items():
            specs: List[AttributeSpec] = []
            for attr_name, domain in attrs.items():
                if isinstance(domain, Attribute):
                    specs.append(domain)
                else:
                    specs.append((attr_name, tuple(domain)))
            schema.declare_class(class_name, specs)
        for name, arg_classes, predicate in description.get("relations", []):
            schema.declare_relation(name, arg_classes, predicate)
        return schema.freeze()

    def __repr__(self) -> str:
        return (f"Schema(classes={[c.name for c in self.classes]}, "
                f"relations={[str(r) for r in self.relations]}, "
                f"frozen={self._frozen})")
