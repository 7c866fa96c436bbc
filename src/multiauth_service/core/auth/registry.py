"""Authentication source registry.

Resolves source ids from the authsources configuration to AuthSource instances.
"""

import importlib
import logging
from typing import Any, Dict, List, Optional, Union

import yaml

from multiauth_service.config.settings import Settings, get_settings

from .errors import ConfigurationError
from .provider import AuthSource
from .stores import StateStore

logger = logging.getLogger(__name__)

# Type tag -> "module:Class" (imported when first used) or the class itself
SOURCE_TYPES: Dict[str, Union[str, type]] = {
    "multiauth:MultiAuth": "multiauth_service.core.auth.multiauth:MultiAuthSource",
    "exampleauth:Static": "multiauth_service.core.auth.static:StaticSource",
}

# Global registry instance (initialized at application startup)
_registry_instance: Optional["SourceRegistry"] = None


def register_source_type(type_tag: str, implementation: Union[str, type]) -> None:
    """Make a source implementation available under a type tag.

    Args:
        type_tag: Tag used in authsources.yml (e.g. "ldap:LDAP")
        implementation: AuthSource subclass, or "package.module:ClassName"
    """
    SOURCE_TYPES[type_tag] = implementation
    logger.debug(f"Registered source type {type_tag} -> {implementation}")


def load_authsources(path: str) -> Dict[str, Dict[str, Any]]:
    """Load the authsources YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Mapping of source id to its configuration

    Raises:
        ConfigurationError: If the file cannot be read or is not a mapping
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load authsources from {path}: {e}")
        raise ConfigurationError(f"Cannot load authsources from {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping of source ids")

    logger.info(f"Loaded {len(data)} authentication sources from {path}")
    return data


class SourceRegistry:
    """Resolves authentication sources by id.

    Each entry of the authsources mapping names its implementation with a type
    tag, either as a "type" key or, in the list form, as the first element:

        campus-ldap:
          type: "ldap:LDAP"
        legacy: ["exampleauth:Static", {attributes: {uid: [guest]}}]

    Sources are instantiated on first use and cached.
    """

    def __init__(
        self,
        authsources: Dict[str, Any],
        state_store: StateStore,
        settings: Optional[Settings] = None,
    ):
        """Initialize source registry.

        Args:
            authsources: Mapping of source id to configuration
            state_store: State store shared by all sources
            settings: Application settings (defaults to get_settings())
        """
        self.authsources = authsources
        self.state_store = state_store
        self.settings = settings or get_settings()
        self._instances: Dict[str, AuthSource] = {}

    def source_ids(self) -> List[str]:
        """All configured source ids, in configuration order"""
        return list(self.authsources.keys())

    def get_type_tag(self, source_id: str) -> Optional[str]:
        """Return the type tag of a configured source.

        Args:
            source_id: Source identifier

        Returns:
            Type tag, or None if the source is unknown or has no string tag
        """
        entry = self.authsources.get(source_id)
        if isinstance(entry, dict):
            tag = entry.get("type")
        elif isinstance(entry, (list, tuple)) and entry:
            tag = entry[0]
        else:
            tag = None
        return tag if isinstance(tag, str) else None

    def get_source_config(self, source_id: str) -> Dict[str, Any]:
        """Return the options of a configured source, without its type tag"""
        entry = self.authsources.get(source_id)
        if isinstance(entry, dict):
            return {k: v for k, v in entry.items() if k != "type"}
        if isinstance(entry, (list, tuple)):
            options: Dict[str, Any] = {}
            for item in entry[1:]:
                if not isinstance(item, dict):
                    raise ConfigurationError(
                        f"Options of authentication source {source_id} must be mappings"
                    )
                options.update(item)
            return options
        return {}

    def resolve(self, source_id: Optional[str]) -> Optional[AuthSource]:
        """Get the source with the given id.

        Args:
            source_id: Source identifier

        Returns:
            AuthSource instance, or None if no such source is configured

        Raises:
            ConfigurationError: If the source's type tag is missing or unknown
        """
        if not source_id or source_id not in self.authsources:
            return None

        if source_id in self._instances:
            return self._instances[source_id]

        type_tag = self.get_type_tag(source_id)
        if type_tag is None:
            raise ConfigurationError(f"Authentication source {source_id} has no type")
        if type_tag not in SOURCE_TYPES:
            raise ConfigurationError(
                f"Unknown type {type_tag} for authentication source {source_id}. "
                f"Valid types: {', '.join(sorted(SOURCE_TYPES))}"
            )

        implementation = SOURCE_TYPES[type_tag]
        if isinstance(implementation, str):
            source_class = self._import_class(implementation)
        else:
            source_class = implementation
        config = self.get_source_config(source_id)
        from_config = getattr(source_class, "from_config", None)
        if from_config is not None:
            instance = from_config(source_id, config, self)
        else:
            instance = source_class(source_id, config)

        self._instances[source_id] = instance
        logger.info(f"Authentication source initialized: {source_id} ({type_tag})")
        return instance

    @staticmethod
    def _import_class(class_path: str) -> type:
        module_name, _, class_name = class_path.partition(":")
        try:
            module = importlib.import_module(module_name)
            return getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Cannot import authentication source {class_path}: {e}") from e


def initialize_source_registry(
    state_store: StateStore,
    authsources: Optional[Dict[str, Any]] = None,
    settings: Optional[Settings] = None,
) -> SourceRegistry:
    """Create the global source registry.

    Args:
        state_store: State store shared by all sources
        authsources: Source configuration (defaults to settings.authsources_path)
        settings: Application settings

    Returns:
        Initialized SourceRegistry
    """
    global _registry_instance

    settings = settings or get_settings()
    if authsources is None:
        authsources = load_authsources(settings.authsources_path)

    _registry_instance = SourceRegistry(authsources, state_store, settings)
    return _registry_instance


def get_source_registry() -> SourceRegistry:
    """Get the global source registry.

    Raises:
        RuntimeError: If initialize_source_registry() has not been called
    """
    if _registry_instance is None:
        raise RuntimeError("Source registry not initialized. Call initialize_source_registry() first.")
    return _registry_instance


def reset_registry() -> None:
    """Reset the global registry instance (for testing)."""
    global _registry_instance
    _registry_instance = None
