#!/usr/bin/env python3
"""
n8n Instance Configuration Module
Handles loading, validation and lookup of n8n instance configurations

Instances are read from environment variables, first non-empty source wins:

    N8N_INSTANCES='[{"name":"prod","url":"https://n8n.example.com","apiKey":"xxx"}]'

    N8N_INSTANCE_1_NAME=prod
    N8N_INSTANCE_1_URL=https://n8n.example.com
    N8N_INSTANCE_1_API_KEY=xxx

    N8N_URL=https://n8n.example.com      (single instance fallback)
    N8N_API_KEY=xxx
    N8N_INSTANCE_NAME=default

The JSON list and the numbered instances are combined; the single instance
variables are only consulted when both produced nothing.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

MAX_NUMBERED_INSTANCES = 20
DEFAULT_INSTANCE_NAME = "default"
NO_INSTANCES_HINT = (
    "No N8N instances configured. "
    "Set N8N_INSTANCES or N8N_URL/N8N_API_KEY environment variables."
)


@dataclass(frozen=True)
class Instance:
    """A single n8n deployment reachable with its own API key"""
    name: str
    url: str
    api_key: str

    def __post_init__(self):
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "url", self.url.rstrip("/"))

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'Instance':
        """Create Instance from a N8N_INSTANCES entry"""
        return cls(
            name=config["name"],
            url=config["url"],
            api_key=config["apiKey"],
        )

    def to_public_dict(self) -> Dict[str, str]:
        """Name and URL only, the API key never leaves the process"""
        return {"name": self.name, "url": self.url}


def _env_value(env: Mapping[str, str], key: str) -> Optional[str]:
    value = env.get(key)
    return value if value else None


def _load_json_instances(raw: str) -> List[Instance]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse N8N_INSTANCES JSON: {e}")
        return []

    if not isinstance(parsed, list):
        logger.warning("N8N_INSTANCES must be a JSON array, ignoring it")
        return []

    instances = []
    for index, entry in enumerate(parsed):
        if not isinstance(entry, dict):
            logger.warning(f"N8N_INSTANCES[{index}] is not an object, skipping")
            continue
        fields = [entry.get(key) for key in ("name", "url", "apiKey")]
        if not all(isinstance(value, str) and value for value in fields):
            logger.warning(
                f"N8N_INSTANCES[{index}] needs non-empty name, url and apiKey, skipping"
            )
            continue
        instances.append(Instance.from_dict(entry))
    return instances


def _load_numbered_instances(env: Mapping[str, str]) -> List[Instance]:
    instances = []
    for i in range(1, MAX_NUMBERED_INSTANCES + 1):
        prefix = f"N8N_INSTANCE_{i}_"
        name = _env_value(env, prefix + "NAME")
        url = _env_value(env, prefix + "URL")
        api_key = _env_value(env, prefix + "API_KEY")

        if name and url and api_key:
            instances.append(Instance(name=name, url=url, api_key=api_key))
        elif name or url or api_key:
            logger.debug(f"Incomplete configuration for {prefix}*, skipping")
    return instances


def load_instances(env: Optional[Mapping[str, str]] = None) -> List[Instance]:
    """Load instance definitions from the environment"""
    if env is None:
        env = os.environ

    instances: List[Instance] = []

    raw_json = _env_value(env, "N8N_INSTANCES")
    if raw_json:
        instances.extend(_load_json_instances(raw_json))

    instances.extend(_load_numbered_instances(env))

    if not instances:
        url = _env_value(env, "N8N_URL")
        api_key = _env_value(env, "N8N_API_KEY")
        name = _env_value(env, "N8N_INSTANCE_NAME") or DEFAULT_INSTANCE_NAME
        if url and api_key:
            instances.append(Instance(name=name, url=url, api_key=api_key))

    logger.debug(f"Loaded {len(instances)} instance configurations")
    return instances


def validate_instances(instances: List[Instance]) -> List[str]:
    """
    Report configuration problems without failing.

    Returns the list of warnings that were logged.
    """
    warnings = []

    if not instances:
        warnings.append(NO_INSTANCES_HINT)

    seen = set()
    for instance in instances:
        key = instance.name.lower()
        if key in seen:
            warnings.append(f"Duplicate instance name: {instance.name}")
        seen.add(key)

    for warning in warnings:
        logger.warning(warning)
    return warnings


def get_instance_by_name(instances: List[Instance], name: str) -> Optional[Instance]:
    """Case-insensitive lookup, first registered match wins"""
    wanted = name.lower()
    for instance in instances:
        if instance.name.lower() == wanted:
            return instance
    return None


class InstanceRegistry:
    """Immutable set of configured instances built once at start-up"""

    def __init__(self, instances: Optional[List[Instance]] = None):
        self._instances: tuple = tuple(instances or ())

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'InstanceRegistry':
        registry = cls(load_instances(env))
        registry.validate()
        return registry

    @property
    def instances(self) -> List[Instance]:
        return list(self._instances)

    def validate(self) -> List[str]:
        return validate_instances(self.instances)

    def resolve(self, name: str) -> Optional[Instance]:
        return get_instance_by_name(self.instances, name)

    def names(self) -> List[str]:
        return [instance.name for instance in self._instances]

    def __len__(self) -> int:
        return len(self._instances)

    def __iter__(self):
        return iter(self._instances)
