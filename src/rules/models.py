from pydantic import BaseModel, Field, field_validator


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class RedirectEngineRules(BaseModel):
    allowed_domains: list[str] = Field(default_factory=list)
    allow_external_redirects: bool = False
    public_origin: str | None = None
    store_key: str = "redirects"

    @field_validator("allowed_domains")
    @classmethod
    def _normalize_domains(cls, value: list[str]) -> list[str]:
        return [d.strip().lower() for d in value if d.strip()]


class CacheRules(BaseModel):
    ttl_seconds: int = Field(default=60, ge=1)
    max_size: int = Field(default=1000, ge=1)
    permanent_max_age: int = Field(default=31536000, ge=0)
    temporary_max_age: int = Field(default=3600, ge=0)


class AuthRules(BaseModel):
    admin_key_env: str = "ADMIN_API_KEY"
    read_key_env: str = "READ_API_KEY"


class StorageRules(BaseModel):
    path: str = "./data/redirector.db"


class LoggingRules(BaseModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()


class Rules(BaseModel):
    project: ProjectRules
    redirects: RedirectEngineRules = Field(default_factory=RedirectEngineRules)
    cache: CacheRules = Field(default_factory=CacheRules)
    auth: AuthRules = Field(default_factory=AuthRules)
    storage: StorageRules = Field(default_factory=StorageRules)
    logging: LoggingRules = Field(default_factory=LoggingRules)
