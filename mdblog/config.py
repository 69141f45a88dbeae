from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

try:
    import tomllib as toml
except ImportError:  # Python < 3.11
    import tomli as toml

from .builder import GenerateOptions
from .errors import ConfigError
from .fingerprint import WatchTargets

DEFAULT_CONFIG_PATH = "site.yml"


@dataclass
class SiteConfig:
    title: str = "Blog"
    description: str = ""
    author: Optional[str] = None
    base_url: str = "https://example.com"
    posts_dir: str = "posts"
    static_dir: str = "static"
    dist_dir: str = "dist"
    templates_dir: str = "templates"

    @classmethod
    def from_mapping(cls, data: dict) -> "SiteConfig":
        config = cls()
        for item in fields(cls):
            value = data.get(item.name)
            if value is None:
                continue
            if isinstance(value, (dict, list)):
                raise ConfigError(f"config key {item.name!r} must be a scalar")
            value = str(value).strip()
            if value:
                setattr(config, item.name, value)
        return config

    def generate_options(self) -> GenerateOptions:
        return GenerateOptions(
            out_dir_path=self.dist_dir,
            posts_dir_path=self.posts_dir,
            static_dir_path=self.static_dir,
            site_title=self.title,
            site_description=self.description,
            base_url=self.base_url,
        )

    def watch_targets(self, config_path: str = DEFAULT_CONFIG_PATH) -> WatchTargets:
        return WatchTargets(
            posts_dir_path=self.posts_dir,
            static_dir_path=self.static_dir,
            templates_dir_path=self.templates_dir,
            site_config_path=config_path,
        )


def read_config_data(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"Config file is not valid UTF-8: {path}: {exc}") from exc
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    return data


def load_config(path: Path) -> SiteConfig:
    return SiteConfig.from_mapping(read_config_data(path))
