"""
Load a coil from a YAML plan.

Expected format:
```yaml
groups:
  - id: users
    requests:
      - name: list
        get: http://localhost:3000/users
      - name: create
        post:
          host: localhost
          port: 3000
          path: /users
          protocol: "http:"
          method: POST
        on_input: my_pkg.inputs.new_user
    children:
      - id: details
        requests:
          - name: resize
            invoke: my_pkg.handlers.resize
            qualifier: dev
```
"""
from __future__ import annotations

import logging
from importlib import import_module
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from .. import request as R
from ..errors import ConfigurationError
from .tree import Coil

logger = logging.getLogger(__name__)

_HTTP_VERBS = {verb.value.lower(): verb for verb in R.HttpVerb}
_INVOKE_KEY = "invoke"


def load_coil(plan_path: Path) -> Coil:
    """
    Load a coil from a YAML file.

    Raises:
        FileNotFoundError: if the plan does not exist
        ConfigurationError: if the plan is malformed
    """
    plan_path = Path(plan_path)
    if not plan_path.exists():
        raise FileNotFoundError(f"Plan file not found: {plan_path}")

    with open(plan_path, "r", encoding="utf-8") as f:
        try:
            yaml_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {plan_path}: {e}") from e

    return load_coil_from_yaml(yaml_data)


def load_coil_from_yaml(yaml_data: Dict[str, Any]) -> Coil:
    """Build a coil from parsed YAML data."""
    if not isinstance(yaml_data, dict):
        raise ConfigurationError("Plan must be a mapping with a 'groups' list")

    groups = yaml_data.get("groups", [])
    if not isinstance(groups, list):
        raise ConfigurationError("'groups' must be a list")

    coil = Coil()
    for group_def in groups:
        coil.from_the_beginning()
        _add_group(coil, group_def, parent_id=None)
    coil.from_the_beginning()

    logger.debug(f"Loaded plan with {coil.request_groups_count()} request groups")
    return coil


def _add_group(coil: Coil, group_def: Any, parent_id: Optional[str]) -> None:
    if not isinstance(group_def, dict) or "id" not in group_def:
        raise ConfigurationError(f"Request group definition needs an 'id': {group_def!r}")

    if parent_id is not None:
        coil.after_group(parent_id)
    group_id = str(group_def["id"])
    coil.start_group(group_id)

    for request_def in group_def.get("requests") or []:
        coil.add_request(build_request(request_def))

    children: List[Any] = group_def.get("children") or []
    for child_def in children:
        _add_group(coil, child_def, parent_id=group_id)


def build_request(request_def: Any) -> R.Request:
    """Build a single request from its plan definition."""
    if not isinstance(request_def, dict) or "name" not in request_def:
        raise ConfigurationError(f"Request definition needs a 'name': {request_def!r}")

    name = str(request_def["name"])
    kinds = [key for key in request_def if key in _HTTP_VERBS or key == _INVOKE_KEY]
    if len(kinds) != 1:
        raise ConfigurationError(
            f"Request '{name}' must define exactly one of: "
            f"{', '.join(sorted(_HTTP_VERBS))}, {_INVOKE_KEY}"
        )

    kind = kinds[0]
    if kind == _INVOKE_KEY:
        request = R.invocation(name, str(request_def[kind]), request_def.get("qualifier"))
    else:
        request = R.http(name, _HTTP_VERBS[kind], request_def[kind])

    on_input = request_def.get("on_input")
    if on_input:
        request.on_input(_import_callable(str(on_input)))
    return request


def _import_callable(path: str) -> Callable[..., Any]:
    """Import a function from a dotted path."""
    parts = path.rsplit(".", 1)
    if len(parts) != 2:
        raise ConfigurationError(f"Invalid function path: {path}")

    module_path, func_name = parts
    try:
        module = import_module(module_path)
        return getattr(module, func_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Could not import '{path}': {e}") from e


__all__ = ["load_coil", "load_coil_from_yaml", "build_request"]
