"""Authentication Context Models

Purpose: Define the data carried through one authentication attempt

The context is created when an attempt starts, travels through the broker's
selection step and the chosen source, and is persisted in the state store
whenever control has to leave the service (a redirect to the selection page or
to a delegate's own login form). Everything on it must therefore be JSON
serializable.

Key Components:
- SourceDescriptor: One selectable authentication source offered by a broker
- ErrorInfo: Serialized form of an error raised by a delegate source
- AuthContext: State of an authentication attempt
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SourceDescriptor(BaseModel):
    """One authentication source the user may choose.

    Attributes:
        source: Identifier of the source in the authsources configuration
        text: Label per language code (e.g. {"en": "Campus login"})
        css_class: Presentation hint for the selection page
    """
    model_config = ConfigDict(frozen=True)

    source: str
    text: Dict[str, str]
    css_class: str = ""

    def label(self, language: str, default_language: str = "en") -> str:
        """Return the label for a language, falling back to the default"""
        if language in self.text:
            return self.text[language]
        return self.text.get(default_language, self.source)


class ErrorInfo(BaseModel):
    """Error attached to a context after a delegate failed.

    Attributes:
        code: Machine-readable error code
        message: Human-readable message
        original_class: Class name of a wrapped non-serializable exception
    """
    code: str
    message: str
    original_class: Optional[str] = None


class AuthContext(BaseModel):
    """State of a single authentication attempt.

    Attributes:
        auth_id: Source the attempt was started at
        return_url: Where to send the user after the attempt completes
        source_hint: Source requested by the client up front (pass-through)
        broker_auth_id: Broker that offered the selection (set by the broker)
        offered_sources: Sources the broker offered (set by the broker)
        selected_source: Source that handled the attempt
        attributes: Attributes produced by the authenticating source
        error: Error reported by the delegate, if any
        completed: True once authentication finished successfully
        data: Opaque per-source data that has to survive redirects
    """
    auth_id: str
    return_url: Optional[str] = None
    source_hint: Optional[str] = None
    broker_auth_id: Optional[str] = None
    offered_sources: List[SourceDescriptor] = Field(default_factory=list)
    selected_source: Optional[str] = None
    attributes: Dict[str, List[str]] = Field(default_factory=dict)
    error: Optional[ErrorInfo] = None
    completed: bool = False
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def offered_ids(self) -> List[str]:
        """Identifiers of the offered sources, in configuration order"""
        return [descriptor.source for descriptor in self.offered_sources]
