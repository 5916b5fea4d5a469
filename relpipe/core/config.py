"""Typed project configuration loading.

The project configuration is a TOML file (``relpipe.toml`` by default)
describing the builds to run, the archives to produce from them and the
release to publish.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_str_list

__all__ = [
    "ArchiveSettings",
    "BuildSettings",
    "Config",
    "ConfigError",
    "DEFAULT_CONFIG_FILE",
    "ReleaseSettings",
    "load_config",
]

DEFAULT_CONFIG_FILE = "relpipe.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ReleaseSettings:
    """Per-release settings, read once and never mutated.

    Attributes:
        type: Release service type (only "github" is supported).
        repository_owner: Owner (user or organization) of the repository.
        repository: Repository name.
        name: Release display name; empty means "use the tag".
        release_notes_file: Optional file whose content becomes the release body.
        draft: Create the release as a draft.
        prerelease: Mark the release as a pre-release.
        generate_release_notes_on_host: Ask the service to generate notes.
    """

    type: str = "github"
    repository_owner: str = ""
    repository: str = ""
    name: str = ""
    release_notes_file: Path | None = None
    draft: bool = False
    prerelease: bool = False
    generate_release_notes_on_host: bool = False


@dataclass(frozen=True, slots=True)
class BuildSettings:
    """One build target: a command run with ``{out}`` set to its output dir."""

    name: str
    command: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ArchiveSettings:
    """One archive, packaging the output directory of ``build``."""

    build: str
    name: str | None = None


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: str
    release: ReleaseSettings = field(default_factory=ReleaseSettings)
    builds: tuple[BuildSettings, ...] = ()
    archives: tuple[ArchiveSettings, ...] = ()
    root: Path = field(default_factory=Path.cwd)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except IsADirectoryError:
        return Err(ConfigError(f"Config path is a directory: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


_TYPE_NAMES = {str: "a string", bool: "a boolean", list: "an array", dict: "a table"}


def _typed[T](table: StrDict, key: str, kind: type[T], where: str) -> T | None:
    """Value at ``key`` if present; a present value of another type is an error."""
    if key not in table:
        return None
    value = table[key]
    if not isinstance(value, kind):
        raise ValueError(f"{where}{key} must be {_TYPE_NAMES[kind]}, got {type(value).__name__}")
    return value


def _parse_release(data: StrDict, root: Path) -> ReleaseSettings:
    release: StrDict = _typed(data, "release", dict, "") or {}
    notes = _typed(release, "release_notes_file", str, "release.")
    notes_path: Path | None = None
    if notes is not None:
        notes_path = Path(notes).expanduser()
        if not notes_path.is_absolute():
            notes_path = root / notes_path

    return ReleaseSettings(
        type=_typed(release, "type", str, "release.") or "github",
        repository_owner=_typed(release, "repository_owner", str, "release.") or "",
        repository=_typed(release, "repository", str, "release.") or "",
        name=_typed(release, "name", str, "release.") or "",
        release_notes_file=notes_path,
        draft=_typed(release, "draft", bool, "release.") or False,
        prerelease=_typed(release, "prerelease", bool, "release.") or False,
        generate_release_notes_on_host=_typed(release, "generate_release_notes_on_host", bool, "release.") or False,
    )


def _parse_builds(data: StrDict) -> tuple[BuildSettings, ...]:
    raw: list[object] = _typed(data, "builds", list, "") or []
    out: list[BuildSettings] = []
    seen: set[str] = set()
    for i, item in enumerate(raw):
        tbl = as_str_dict(item)
        if tbl is None:
            raise ValueError(f"builds[{i}] must be a table")

        name = _typed(tbl, "name", str, f"builds[{i}].")
        if not name:
            raise ValueError(f"builds[{i}] is missing 'name'")
        if name in seen:
            raise ValueError(f"duplicate build name: {name}")
        seen.add(name)

        command = get_str_list(tbl, "command")
        if not command:
            raise ValueError(f"build '{name}' needs a non-empty 'command' list of strings")

        env_tbl: StrDict = _typed(tbl, "env", dict, f"build '{name}' ") or {}
        env: dict[str, str] = {}
        for k, v in env_tbl.items():
            if not isinstance(v, str):
                raise ValueError(f"build '{name}' env value for {k} must be a string")
            env[k] = v

        out.append(BuildSettings(name=name, command=tuple(command), env=env))
    return tuple(out)


def _parse_archives(data: StrDict, builds: tuple[BuildSettings, ...]) -> tuple[ArchiveSettings, ...]:
    raw: list[object] = _typed(data, "archives", list, "") or []
    known = {b.name for b in builds}
    out: list[ArchiveSettings] = []
    for i, item in enumerate(raw):
        tbl = as_str_dict(item)
        if tbl is None:
            raise ValueError(f"archives[{i}] must be a table")

        build = _typed(tbl, "build", str, f"archives[{i}].")
        if not build:
            raise ValueError(f"archives[{i}] is missing 'build'")
        if build not in known:
            raise ValueError(f"archives[{i}] references unknown build: {build}")

        out.append(ArchiveSettings(build=build, name=_typed(tbl, "name", str, f"archives[{i}].")))
    return tuple(out)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and validate the project configuration.

    Relative paths inside the file (the release notes file) resolve against
    the directory holding the config file.

    Args:
        path: Path to the TOML file.

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure.
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    data = result.value
    root = path.resolve().parent

    project = get_str(data, "project")
    if project is None:
        return Err(ConfigError("Config is missing 'project'", path=path))

    try:
        builds = _parse_builds(data)
        archives = _parse_archives(data, builds)
        release = _parse_release(data, root)
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))

    return Ok(
        Config(
            project=project,
            release=release,
            builds=builds,
            archives=archives,
            root=root,
        )
    )
