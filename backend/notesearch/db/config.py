# backend/notesearch/db/config.py
from __future__ import annotations
import logging
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv

# Load .env before reading settings
load_dotenv()

logger = logging.getLogger("notesearch.config")


def _csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    db_host: str = Field("localhost", validation_alias="DB_HOST")
    db_port: int = Field(5432, validation_alias="DB_PORT")
    db_user: str = Field("postgres", validation_alias="DB_USER")
    db_password: str = Field("postgres", validation_alias="DB_PASSWORD")
    db_name: str = Field("notesdb", validation_alias="DB_NAME")

    # "pgvector" | "local"
    retriever_backend: str = Field("pgvector", validation_alias="RETRIEVER_BACKEND")
    stores_path: str | None = Field(None, validation_alias="STORES_PATH")
    chunks_table: str = Field("store_chunks", validation_alias="CHUNKS_TABLE")
    stores_table: str = Field("stores", validation_alias="STORES_TABLE")

    # "ollama" | "hash"
    embedding_backend: str = Field("ollama", validation_alias="EMBEDDING_BACKEND")
    embedding_model: str = Field("nomic-embed-text", validation_alias="EMBEDDING_MODEL")
    embedding_dim: int = Field(768, validation_alias="EMBEDDING_DIM")

    ollama_host: str | None = Field(None, validation_alias="OLLAMA_HOST")
    generation_model: str = Field("llama3.2:3b", validation_alias="GENERATION_MODEL")
    generation_timeout: int = Field(180, validation_alias="GENERATION_TIMEOUT")
    generation_max_retries: int = Field(3, validation_alias="GENERATION_MAX_RETRIES")
    generation_temperature: float = 0.7
    generation_top_p: float = 0.95
    generation_top_k: int = 40
    generation_max_tokens: int = 8192

    per_store_timeout_ms: int = Field(30000, ge=1, validation_alias="PER_STORE_TIMEOUT_MS")
    retrieval_top_k: int = Field(8, ge=1, validation_alias="RETRIEVAL_TOP_K")
    document_denylist: str = Field(".project-metadata,.metadata", validation_alias="DOCUMENT_DENYLIST")
    display_name_prefix: str = Field("Project_", validation_alias="DISPLAY_NAME_PREFIX")
    system_store_prefixes: str = Field("User_,System_", validation_alias="SYSTEM_STORE_PREFIXES")

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def denylist(self) -> List[str]:
        return _csv(self.document_denylist)

    @property
    def system_prefixes(self) -> List[str]:
        return _csv(self.system_store_prefixes)

    @property
    def per_store_timeout(self) -> float:
        return self.per_store_timeout_ms / 1000.0


# Instantiate settings once
settings = Settings()

# Mask password for safe logging
masked = settings.database_url.replace(settings.db_password, "*****") if settings.db_password else settings.database_url
logger.info(f"Database DSN: {masked} | retriever={settings.retriever_backend}")
