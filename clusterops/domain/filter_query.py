"""Server-side filter predicates for host and host-component queries.

Pure Python, no I/O. A query is a disjunction of conjunctions rendered in
the cluster API predicate syntax: ``&`` binds within a clause, ``|``
joins clauses, ``.in(a,b)`` tests membership.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Sequence, Tuple


class Resource(str, Enum):
    """Which collection the predicate is evaluated against."""

    HOSTS = "hosts"
    HOST_COMPONENTS = "host_components"


# (host name field, component name field) per resource
_FIELDS: Dict[Resource, Tuple[str, str]] = {
    Resource.HOSTS: ("Hosts/host_name", "host_components/HostRoles/component_name"),
    Resource.HOST_COMPONENTS: ("HostRoles/host_name", "HostRoles/component_name"),
}

_PASSIVE_FIELD: Dict[Resource, str] = {
    Resource.HOSTS: "Hosts/maintenance_state",
    Resource.HOST_COMPONENTS: "HostRoles/maintenance_state",
}


@dataclass(frozen=True)
class Predicate:
    field: str
    values: Tuple[str, ...]
    membership: bool = False

    def render(self) -> str:
        if self.membership:
            return f"{self.field}.in({','.join(self.values)})"
        return f"{self.field}={self.values[0]}"


def eq(field: str, value: str) -> Predicate:
    return Predicate(field, (value,))


def within(field: str, values: Sequence[str]) -> Predicate:
    return Predicate(field, tuple(values), membership=True)


@dataclass(frozen=True)
class FilterQuery:
    clauses: Tuple[Tuple[Predicate, ...], ...]
    fields: Tuple[str, ...] = ()
    # per-host clauses keep their parentheses even for a single host
    grouped: bool = False

    def to_predicate(self) -> str:
        rendered = ["&".join(p.render() for p in clause) for clause in self.clauses]
        if not self.grouped:
            return "|".join(rendered)
        return "|".join(f"({r})" for r in rendered)

    def params(self) -> Dict[str, str]:
        """Projection parameters sent next to the predicate."""
        params = {}
        if self.fields:
            params["fields"] = ",".join(self.fields)
        params["minimal_response"] = "true"
        return params


def build_component_filter(
    hosts: Sequence[str],
    components: Optional[Sequence[str]] = None,
    passive_state: Optional[str] = None,
    display_fields: Sequence[str] = (),
    resource: Resource = Resource.HOSTS,
) -> FilterQuery:
    """Build the live-state read query for a host selection.

    Args:
        hosts: Host names, in selection order. Must not be empty.
        components: When given, one clause per host restricted to these roles.
        passive_state: Only match hosts in this maintenance state (e.g. "OFF").
        display_fields: Extra field projections to return.
    """
    if not hosts:
        raise ValueError("host selection is empty")

    host_field, component_field = _FIELDS[resource]
    common = []
    if passive_state:
        common.append(eq(_PASSIVE_FIELD[resource], passive_state))

    if components:
        clauses = tuple(
            tuple(common) + (within(component_field, components), eq(host_field, host))
            for host in hosts
        )
    else:
        clauses = (tuple(common) + (within(host_field, hosts),),)

    fields = ("Hosts/host_name",) + tuple(f for f in display_fields if f != "Hosts/host_name")
    return FilterQuery(clauses=clauses, fields=fields, grouped=bool(components))


def build_per_host_filter(host_components: Mapping[str, Sequence[str]]) -> FilterQuery:
    """Update query naming exactly which roles to touch on each host."""
    if not host_components:
        raise ValueError("host selection is empty")
    host_field, component_field = _FIELDS[Resource.HOST_COMPONENTS]
    clauses = tuple(
        (within(component_field, names), eq(host_field, host))
        for host, names in host_components.items()
        if names
    )
    if not clauses:
        raise ValueError("no host components selected")
    return FilterQuery(clauses=clauses, grouped=True)


def hosts_in(host_names: Sequence[str], field: str = "Hosts/host_name") -> str:
    return within(field, host_names).render()
