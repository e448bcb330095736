import json
import tomllib
from pathlib import Path
from typing import Any, Mapping

import yaml

from shipforge.errors import UnknownHostError, UnknownTaskError
from shipforge.hosts import LOCAL, Endpoint

from .types import ConfigError, ProjectConfig, TaskConfig, UnsupportedConfigFormatError

TOP_LEVEL_KEYS = {"hosts", "vars", "tasks", "macros"}
TASK_KEYS = {"target", "script", "message", "continue_on_failure"}
ENDPOINT_KEYS = {"host", "user", "port", "key_filename", "forward_agent"}


def load_project(path: str | Path) -> ProjectConfig:
    pure_path = Path(path).expanduser().resolve()

    if not pure_path.exists():
        raise ConfigError(f"Config file not found: {pure_path}")

    if not pure_path.is_file():
        raise ConfigError(f"Config path is not a file: {pure_path}")

    fmt = _detect_format(pure_path)
    raw_file = _parse_file(pure_path, fmt)
    return _build_project_config(raw_file)


def _detect_format(path: Path) -> str:
    match path.suffix:
        case ".yaml" | ".yml":
            return "yaml"
        case ".toml":
            return "toml"
        case ".json":
            return "json"
        case other:
            raise UnsupportedConfigFormatError(
                f"Unsupported file extension: {other or '(none)'}\n"
                " Expected format: .yml/.yaml, .toml, .json"
            )


def _parse_file(path: Path, fmt: str) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    match fmt:
        case "yaml":
            try:
                raw_file = yaml.safe_load(text)
            except yaml.YAMLError as exc:
                raise ConfigError(f"{path}: invalid YAML") from exc
        case "toml":
            try:
                raw_file = tomllib.loads(text)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(f"{path}: invalid TOML") from exc
        case "json":
            try:
                raw_file = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ConfigError(f"{path}: invalid JSON") from exc
        case _:
            raise AssertionError("Unreachable")

    if not isinstance(raw_file, Mapping):
        raise ConfigError(
            f"{path}: top-level value must be an object, got {type(raw_file).__name__}"
        )

    return raw_file


def _build_project_config(raw: Mapping[str, Any]) -> ProjectConfig:
    for key in raw.keys():
        if key not in TOP_LEVEL_KEYS:
            raise ConfigError(f"Unknown top-level field: {key}")

    hosts = _build_hosts(_section(raw, "hosts"))
    variables = _build_vars(_section(raw, "vars"))

    if "tasks" not in raw:
        raise ConfigError("Missing 'tasks' field")

    if not isinstance(raw["tasks"], Mapping):
        raise ConfigError(f"'tasks' must be a mapping, got {type(raw['tasks']).__name__}")

    if len(raw["tasks"]) < 1:
        raise ConfigError("There must be at least one task in the config file")

    tasks: dict[str, TaskConfig] = {}
    for task_id, fields in raw["tasks"].items():
        task_id_norm = _normalize_id(task_id, "task")

        if task_id_norm in tasks:
            raise ConfigError(f"Duplicate task id after normalization: {task_id_norm}")

        if not isinstance(fields, Mapping):
            raise ConfigError(f"{task_id_norm} must be a mapping")

        tasks[task_id_norm] = _build_task_config(task_id_norm, fields)

    for task in tasks.values():
        if task.target != LOCAL and task.target not in hosts:
            raise UnknownHostError(task.target, task_id=task.id)

    macros = _build_macros(_section(raw, "macros"), tasks)

    return ProjectConfig(tasks=tasks, macros=macros, hosts=hosts, vars=variables)


def _section(raw: Mapping[str, Any], key: str) -> Any:
    # An empty YAML section parses as None.
    value = raw.get(key)
    return {} if value is None else value


def _normalize_id(value: Any, kind: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"A {kind} id must be a string, got {type(value).__name__}")

    norm = value.strip()
    if len(norm) < 1:
        raise ConfigError(f"A {kind} id can't be empty")

    return norm


def _build_task_config(task_id: str, fields: Mapping[str, Any]) -> TaskConfig:
    for field in fields.keys():
        if field not in TASK_KEYS:
            raise ConfigError(f"{task_id}: Can't process: {field}")

    if "target" not in fields:
        raise ConfigError(f"{task_id}: missing 'target'")

    if not isinstance(fields["target"], str) or len(fields["target"].strip()) < 1:
        raise ConfigError(f"{task_id}: 'target' should be a non-empty string")

    if "script" not in fields:
        raise ConfigError(f"{task_id}: missing 'script'")

    if not isinstance(fields["script"], str):
        raise ConfigError(f"{task_id}: The script should be a string")

    if len(fields["script"].strip()) < 1:
        raise ConfigError(f"{task_id}: Script missing")

    message = None
    if "message" in fields:
        if not isinstance(fields["message"], str):
            raise ConfigError(f"{task_id}: The message should be a string")
        message = fields["message"].strip() or None

    continue_on_failure = fields.get("continue_on_failure", False)
    if not isinstance(continue_on_failure, bool):
        raise ConfigError(f"{task_id}: continue_on_failure should be true or false")

    return TaskConfig(
        task_id,
        fields["target"].strip(),
        fields["script"].strip("\n"),
        message,
        continue_on_failure,
    )


def _build_hosts(raw: Any) -> dict[str, list[Endpoint]]:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"'hosts' must be a mapping, got {type(raw).__name__}")

    hosts: dict[str, list[Endpoint]] = {}
    for name, value in raw.items():
        name_norm = _normalize_id(name, "host group")

        if name_norm == LOCAL:
            raise ConfigError(f"'{LOCAL}' is reserved and can't be declared as a host group")

        if name_norm in hosts:
            raise ConfigError(f"Duplicate host group after normalization: {name_norm}")

        items = value if isinstance(value, list) else [value]
        if len(items) < 1:
            raise ConfigError(f"{name_norm}: a host group needs at least one endpoint")

        hosts[name_norm] = [_build_endpoint(name_norm, item) for item in items]

    return hosts


def _build_endpoint(group: str, item: Any) -> Endpoint:
    if isinstance(item, str):
        try:
            return Endpoint.parse(item)
        except ValueError as exc:
            raise ConfigError(f"{group}: {exc}") from exc

    if not isinstance(item, Mapping):
        raise ConfigError(f"{group}: an endpoint must be a string or a mapping")

    for field in item.keys():
        if field not in ENDPOINT_KEYS:
            raise ConfigError(f"{group}: Can't process endpoint field: {field}")

    host = item.get("host")
    if not isinstance(host, str) or len(host.strip()) < 1:
        raise ConfigError(f"{group}: endpoint 'host' should be a non-empty string")

    user = item.get("user")
    if user is not None and not isinstance(user, str):
        raise ConfigError(f"{group}: endpoint 'user' should be a string")

    port = item.get("port")
    if port is not None and (isinstance(port, bool) or not isinstance(port, int)):
        raise ConfigError(f"{group}: endpoint 'port' should be an integer")

    key_filename = item.get("key_filename")
    if key_filename is not None and not isinstance(key_filename, str):
        raise ConfigError(f"{group}: endpoint 'key_filename' should be a string")

    forward_agent = item.get("forward_agent", False)
    if not isinstance(forward_agent, bool):
        raise ConfigError(f"{group}: endpoint 'forward_agent' should be true or false")

    if host.strip() == LOCAL:
        raise ConfigError(f"{group}: '{LOCAL}' can't be used as a remote host")

    return Endpoint(host.strip(), user, port, key_filename, forward_agent)


def _build_vars(raw: Any) -> dict[str, str]:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"'vars' must be a mapping, got {type(raw).__name__}")

    variables: dict[str, str] = {}
    for key, value in raw.items():
        if not isinstance(key, str) or len(key.strip()) < 1:
            raise ConfigError(f"A variable name must be a non-empty string, got {key!r}")

        # bool is an int subclass; "True" is never what a shell script wants.
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ConfigError(f"{key}: a variable must be a string or a number")

        variables[key.strip()] = str(value)

    return variables


def _build_macros(raw: Any, tasks: Mapping[str, TaskConfig]) -> dict[str, list[str]]:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"'macros' must be a mapping, got {type(raw).__name__}")

    macros: dict[str, list[str]] = {}
    for macro_id, items in raw.items():
        macro_norm = _normalize_id(macro_id, "macro")

        if macro_norm in macros:
            raise ConfigError(f"Duplicate macro id after normalization: {macro_norm}")

        if not isinstance(items, list) or len(items) < 1:
            raise ConfigError(f"{macro_norm}: a macro must be a non-empty list of task ids")

        ordered: list[str] = []
        for item in items:
            if not isinstance(item, str) or len(item.strip()) < 1:
                raise ConfigError(f"{macro_norm}: {item!r} is not a task id")

            tid = item.strip()
            if tid not in tasks:
                raise UnknownTaskError(tid, macro_id=macro_norm)

            # Repeats are allowed and run again.
            ordered.append(tid)

        macros[macro_norm] = ordered

    return macros
