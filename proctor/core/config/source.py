import functools
import typing as t
from pathlib import Path

import pydantic as p
import yaml
from pydantic_settings import PydanticBaseSettingsSource, SettingsError

from proctor.model import DeploymentEnvironment

SkipKeys = frozenset({"env", "root", "override"})


def merge(base: t.Any, layer: t.Any) -> t.Any:
    """Lay `layer` over `base`; mappings present in both are merged key by key, anything else is replaced."""
    if isinstance(base, dict) and isinstance(layer, dict):
        merged = dict(t.cast(dict[t.Any, t.Any], base))
        for k, v in t.cast(dict[t.Any, t.Any], layer).items():
            merged[k] = merge(merged.get(k), v)
        return merged
    return base if layer is None else layer


class CurrentState(t.TypedDict, total=False):
    root: t.Required[p.AnyUrl]
    env: t.Required[DeploymentEnvironment]


class SettingsCurrentState(CurrentState, total=False):
    override: t.Required[tuple[str, ...]]


def cascade_paths(root: p.AnyUrl, env: DeploymentEnvironment) -> list[Path]:
    """The directories searched for YAML files, least specific first."""
    assert root.scheme == "file" and root.path is not None, "root is not a legible location of YAML files"
    paths = [Path(root.path)]
    if env is not DeploymentEnvironment.Local:
        # we don't have a special directory for local/ that's just root
        paths.append(Path(root.path) / "env.d" / env.value)
    return paths


class SettingsSource(PydanticBaseSettingsSource):
    def __call__(self) -> dict[str, t.Any]:
        # we expect init kwargs to have config root and env in them
        data: dict[str, t.Any] = {}

        for field_name, field in self.settings_cls.model_fields.items():
            try:
                field_value, field_key, value_is_complex = self.get_field_value(field, field_name)
                field_value = self.prepare_field_value(field_name, field, field_value, value_is_complex)
            except KeyError:
                continue
            except ValueError as e:
                raise SettingsError(f"error parsing value for field {field_name!r} from source {self!r}") from e
            except Exception as e:
                raise SettingsError(f"error getting value for field {field_name!r} from source {self!r}") from e

            data[field_key] = field_value
        return data


class OverrideSettingsSource(SettingsSource):
    """Values given as `-o dotted.key=value` on the command line; values are parsed as YAML."""

    @functools.cached_property
    def parsed_options(self) -> dict[str, t.Any]:
        current_state = t.cast(SettingsCurrentState, self.current_state)
        override = current_state.get("override", ())
        od: dict[str, t.Any] = {}
        for o in override:
            if "=" not in o:
                raise ValueError(f"override must have the form key.path=value: {o!r}")
            k, v = [s.strip() for s in o.split("=", 1)]

            target = od
            path = k.split(".")
            for key in path[:-1]:
                target = target.setdefault(key, {})
            target[path[-1]] = yaml.safe_load(v)
        return od

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        if field_name in SkipKeys or field_name not in self.parsed_options:
            raise KeyError(field_name)
        return self.parsed_options[field_name], field_name, isinstance(self.parsed_options[field_name], dict)

    def prepare_field_value(
        self, field_name: str, field: p.fields.FieldInfo, value: t.Any, value_is_complex: bool
    ) -> t.Any:
        return value


class YAMLCascadingSettingsSource(SettingsSource):
    """Reads `<field>.yaml` from the config root, then from `env.d/<env>/`, merging later files over earlier ones."""

    @functools.cached_property
    def load_paths(self) -> list[Path]:
        current_state = t.cast(SettingsCurrentState, self.current_state)
        return cascade_paths(current_state["root"], current_state["env"])

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        if field_name in SkipKeys:
            raise KeyError(field_name)
        yamls: list[str] = []
        for path in self.load_paths:
            fn = path / f"{field_name}.yaml"
            if fn.exists():
                yamls.append(fn.read_text(encoding="utf8"))
        if not yamls:
            raise KeyError(field_name)
        return yamls, field_name, True

    def prepare_field_value(
        self, field_name: str, field: p.fields.FieldInfo, value: t.Any, value_is_complex: bool
    ) -> t.Any:
        # for complex values, we expect to be given a list[str] representing
        # the yamls encountered along the load_paths
        if not isinstance(value, list):
            raise ValueError(field_name)

        merged: t.Any = None
        for doc in t.cast(list[str], value):
            merged = merge(merged, yaml.safe_load(doc))
        return merged


class YAMLSecretsSource(SettingsSource):
    """Reads `secrets.yaml` along the same cascade as the settings; absent files are fine."""

    @functools.cached_property
    def secrets(self) -> dict[str, t.Any]:
        current_state = t.cast(CurrentState, self.current_state)
        merged: dict[t.Any, t.Any] = {}
        for path in cascade_paths(current_state["root"], current_state["env"]):
            fn = path / "secrets.yaml"
            if not fn.exists():
                continue
            loaded = yaml.safe_load(fn.read_text(encoding="utf8")) or {}
            if not isinstance(loaded, dict):
                raise ValueError(f"{fn}: secrets must be a mapping")
            merged = merge(merged, loaded)
        return merged

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        # `root` is needed to locate the secrets, so it can never come from them
        if field_name in SkipKeys or field_name not in self.secrets:
            raise KeyError(field_name)
        val = self.secrets[field_name]
        return val, field_name, isinstance(val, dict)

    def prepare_field_value(
        self, field_name: str, field: p.fields.FieldInfo, value: t.Any, value_is_complex: bool
    ) -> t.Any:
        return value
