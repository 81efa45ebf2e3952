from __future__ import annotations
import logging
from dataclasses import dataclass

from notesearch.core.ports.embeddings import IEmbeddingModel
from notesearch.core.ports.generator import IAnswerGenerator
from notesearch.core.ports.registry import IStoreRegistry
from notesearch.core.ports.retriever import IStoreRetriever
from notesearch.core.services.aggregator import ChunkAggregator
from notesearch.core.services.coordinator import RetrievalCoordinator
from notesearch.core.services.search_service import MultiStoreSearchService
from notesearch.db.session import DatabasePool
from notesearch.models.embedding.hash_embedding import HashEmbedding
from notesearch.models.embedding.ollama_embedding import OllamaEmbedding
from notesearch.models.llm.ollama_generator import OllamaAnswerGenerator
from notesearch.models.registry.pg_registry import PgStoreRegistry
from notesearch.models.retriever.pgvector_retriever import PgVectorStoreRetriever
from notesearch.models.store.inmemory_store import LocalStoreRetriever

logger = logging.getLogger("notesearch.container")

@dataclass
class AppContainer:
    search_service: MultiStoreSearchService
    registry: IStoreRegistry
    retriever: IStoreRetriever
    generator: IAnswerGenerator
    embedder: IEmbeddingModel
    mode: str

def build_embedder(settings) -> IEmbeddingModel:
    if settings.embedding_backend == "hash":
        logger.info(f"🔌 Using hash embedding: dim={settings.embedding_dim}")
        return HashEmbedding(dim=settings.embedding_dim)
    logger.info(f"🔌 Using Ollama embedding: model={settings.embedding_model}")
    return OllamaEmbedding(host=settings.ollama_host, model=settings.embedding_model)

def build_generator(settings) -> IAnswerGenerator:
    generator = OllamaAnswerGenerator(
        host=settings.ollama_host,
        model=settings.generation_model,
        timeout=settings.generation_timeout,
        max_retries=settings.generation_max_retries,
        options={
            "temperature": settings.generation_temperature,
            "top_p": settings.generation_top_p,
            "top_k": settings.generation_top_k,
            "num_predict": settings.generation_max_tokens,
        },
    )
    generator.check_connectivity()
    return generator

def assemble(settings, retriever: IStoreRetriever, registry: IStoreRegistry,
             generator: IAnswerGenerator) -> MultiStoreSearchService:
    """Wire the pipeline around already-built collaborators."""
    aggregator = ChunkAggregator(
        registry=registry,
        denylist=settings.denylist,
        name_prefix=settings.display_name_prefix,
    )
    coordinator = RetrievalCoordinator(retriever=retriever, aggregator=aggregator)
    return MultiStoreSearchService(
        coordinator=coordinator,
        aggregator=aggregator,
        generator=generator,
        default_timeout=settings.per_store_timeout,
    )

async def build_container(settings) -> AppContainer:
    """
    Build every collaborator exactly once at startup.
    "local" serves stores from a JSONL corpus; "pgvector" from Postgres.
    """
    backend = settings.retriever_backend
    logger.info(f"🔧 Building container - Backend: {backend}")

    embedder = build_embedder(settings)
    generator = build_generator(settings)

    if backend == "local":
        if not settings.stores_path:
            raise RuntimeError("RETRIEVER_BACKEND=local requires STORES_PATH")
        retriever = LocalStoreRetriever(embedder=embedder, top_k=settings.retrieval_top_k)
        await retriever.load(settings.stores_path)
        registry: IStoreRegistry = retriever.registry()
        logger.info(f"📂 Local store mode - corpus: {settings.stores_path}")
    else:
        await DatabasePool.init()
        pool_provider = lambda: DatabasePool.pool
        retriever = PgVectorStoreRetriever(
            pool_provider=pool_provider,
            embedder=embedder,
            table=settings.chunks_table,
            top_k=settings.retrieval_top_k,
            statement_timeout_ms=settings.per_store_timeout_ms,
        )
        registry = PgStoreRegistry(pool_provider=pool_provider, table=settings.stores_table)
        logger.info("🔗 Using pgvector retriever backend")

    service = assemble(settings, retriever, registry, generator)
    logger.info("✅ Container built successfully")
    return AppContainer(
        search_service=service,
        registry=registry,
        retriever=retriever,
        generator=generator,
        embedder=embedder,
        mode=backend,
    )
