"""Normalization of a broker's configured sources.

A broker's "sources" option accepts two entry shapes, kept for backwards
compatibility:

    sources:
      - campus-ldap                      # bare id
      - sms:                             # id with overrides
          text: {en: "Text message", nl: "SMS"}
          css-class: sms

The mapping form (``sources: {campus-ldap: {}, sms: {...}}``) is also accepted.
Both shapes are resolved once, at broker construction, into SourceDescriptor.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from multiauth_service.domain.models.context import SourceDescriptor

from .errors import ConfigurationError


class TypeTagLookup(Protocol):
    def get_type_tag(self, source_id: str) -> Optional[str]: ...


@dataclass(frozen=True)
class BareSourceEntry:
    """Entry given as the source id alone"""
    source: str


@dataclass(frozen=True)
class OverrideSourceEntry:
    """Entry given as source id with display overrides"""
    source: str
    overrides: Dict[str, Any] = field(default_factory=dict)


SourceEntry = Union[BareSourceEntry, OverrideSourceEntry]


def parse_source_entries(sources: Any) -> List[SourceEntry]:
    """Split the raw "sources" option into tagged entries.

    Args:
        sources: Value of the "sources" option

    Returns:
        Entries in configuration order

    Raises:
        ConfigurationError: If the option is not a non-empty collection of
            well-formed entries
    """
    if isinstance(sources, Mapping):
        items: List[Any] = [{source_id: overrides} for source_id, overrides in sources.items()]
    elif isinstance(sources, Sequence) and not isinstance(sources, (str, bytes)):
        items = list(sources)
    else:
        raise ConfigurationError('The "sources" option must be a list of authentication sources')

    if not items:
        raise ConfigurationError('The "sources" option must name at least one authentication source')

    entries: List[SourceEntry] = []
    for item in items:
        if isinstance(item, str):
            entries.append(BareSourceEntry(item))
        elif isinstance(item, Mapping) and len(item) == 1:
            source_id, overrides = next(iter(item.items()))
            if overrides is None:
                overrides = {}
            if not isinstance(source_id, str) or not isinstance(overrides, Mapping):
                raise ConfigurationError(f"Malformed entry in sources: {item!r}")
            entries.append(OverrideSourceEntry(source_id, dict(overrides)))
        else:
            raise ConfigurationError(f"Malformed entry in sources: {item!r}")
    return entries


def default_css_class(source_id: str, registry: TypeTagLookup) -> str:
    """CSS class derived from a source's type tag ("ldap:LDAP" -> "ldap-LDAP")"""
    type_tag = registry.get_type_tag(source_id)
    if type_tag is None:
        return ""
    return type_tag.replace(":", "-")


def build_source_descriptors(
    config: Mapping[str, Any],
    default_language: str,
    registry: TypeTagLookup,
) -> Tuple[SourceDescriptor, ...]:
    """Build the ordered, immutable list of sources a broker offers.

    Args:
        config: Broker configuration; must contain "sources"
        default_language: Language the default label is given in
        registry: Used to derive the default CSS class from the source type

    Returns:
        One descriptor per configured entry, in configuration order

    Raises:
        ConfigurationError: If "sources" is missing, empty or malformed, or
            lists the same source twice
    """
    if "sources" not in config:
        raise ConfigurationError('The required "sources" config option was not found')

    descriptors: List[SourceDescriptor] = []
    seen = set()
    for entry in parse_source_entries(config["sources"]):
        if entry.source in seen:
            raise ConfigurationError(f"Authentication source {entry.source} is listed twice")
        seen.add(entry.source)

        overrides = entry.overrides if isinstance(entry, OverrideSourceEntry) else {}

        text = overrides.get("text")
        if text is None:
            text = {default_language: entry.source}
        elif isinstance(text, str):
            text = {default_language: text}
        elif not isinstance(text, Mapping) or not all(
            isinstance(language, str) and isinstance(label, str)
            for language, label in text.items()
        ):
            raise ConfigurationError(f"Invalid text for authentication source {entry.source}")

        css_class = overrides.get("css-class", overrides.get("css_class"))
        if css_class is None:
            css_class = default_css_class(entry.source, registry)

        descriptors.append(
            SourceDescriptor(source=entry.source, text=dict(text), css_class=str(css_class))
        )

    return tuple(descriptors)
