# config.py
# Runtime configuration: defaults, then config.yaml, then environment.
#
# Environment overrides:
#   PLAN_AGENT_PROVIDER  provider type (openrouter | openai | ollama)
#   PLAN_AGENT_MODEL     model name
#   PLAN_AGENT_BASE_URL  backend base URL

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from plan_agent.errors import ConfigError

DEFAULT_SYSTEM_PROMPT = "You are an autonomous agent executing a workflow plan."


class ProviderConfig(BaseModel):
    provider_type: str = Field(default="ollama", description="Key for create_provider().")
    model: str | None = None
    base_url: str | None = None
    api_key_env: str = Field(default="OPENROUTER_API_KEY", description="Env var holding the API key.")
    timeout_seconds: float = 600.0


class AgentConfig(BaseModel):
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    max_iterations: int = Field(default=5, ge=1)
    max_tokens: int = Field(default=4096, ge=1)
    timeout_seconds: float = Field(
        default=600.0, gt=0, description="Wall-clock budget for one CLI command; cancels the run when spent."
    )


class RepositoryConfig(BaseModel):
    ignore_patterns: list[str] = Field(
        default_factory=lambda: [".git", "target", "__pycache__", ".venv", "node_modules"],
        description="Glob patterns matched against file and directory names and relative paths.",
    )


class DocumentationConfig(BaseModel):
    output_dir: str = "docs"


class Config(BaseModel):
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    documentation: DocumentationConfig = Field(default_factory=DocumentationConfig)

    @classmethod
    def load(cls, path: str | Path = "config.yaml") -> "Config":
        load_dotenv()

        path = Path(path)
        data: dict = {}
        if path.exists():
            try:
                loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
            if loaded is not None and not isinstance(loaded, dict):
                raise ConfigError(f"Config file {path} must contain a mapping.")
            data = loaded or {}

        try:
            config = cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc

        provider = os.getenv("PLAN_AGENT_PROVIDER")
        if provider:
            config.provider.provider_type = provider
        model = os.getenv("PLAN_AGENT_MODEL")
        if model:
            config.provider.model = model
        base_url = os.getenv("PLAN_AGENT_BASE_URL")
        if base_url:
            config.provider.base_url = base_url

        return config
