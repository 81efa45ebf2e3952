# backend/notesearch/models/llm/ollama_generator.py

from __future__ import annotations
from typing import Optional
import re, time, requests, logging
from notesearch.core.errors import SynthesisFailed
from notesearch.core.ports.generator import IAnswerGenerator
from notesearch.models.embedding.ollama_embedding import resolve_ollama_host

logger = logging.getLogger("notesearch.llm.ollama")

RETRYABLE_STATUS = {429, 502, 503, 504}
_RETRY_IN = re.compile(r"retry in (\d+(?:\.\d+)?)", re.I)


def _suggested_delay(body: str) -> Optional[float]:
    m = _RETRY_IN.search(body or "")
    return float(m.group(1)) if m else None


class OllamaAnswerGenerator(IAnswerGenerator):
    """
    Pure generation through Ollama's /api/generate; no retrieval tool is
    attached, so the model only sees the evidence placed in the prompt.

    Rate-limit / transient upstream errors are retried with exponential
    backoff; anything else, or exhausting the retries, raises SynthesisFailed.
    """

    def __init__(
        self,
        host: str | None = None,
        model: str = "llama3.2:3b",
        timeout: int = 180,
        max_retries: int = 3,
        initial_delay: float = 5.0,
        options: dict | None = None,
        session: requests.Session | None = None,
    ):
        self.host = resolve_ollama_host(host)
        self.model = model.strip()
        self.timeout = timeout
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.options = options or {"temperature": 0.7, "top_p": 0.95, "top_k": 40, "num_predict": 8192}
        self.session = session or requests.Session()

    def check_connectivity(self) -> bool:
        try:
            r = self.session.get(f"{self.host}/api/tags", timeout=5)
            r.raise_for_status()
            models = [m.get("model") or m.get("name") for m in r.json().get("models", [])]
            logger.info(f"✅ Ollama reachable at {self.host}")
            logger.info(f"📦 Models: {models}")
            if self.model not in models:
                logger.warning(f"⚠️ Generator model '{self.model}' not registered.")
            return True
        except requests.RequestException as e:
            logger.error(f"❌ Cannot contact Ollama generation service: {e}")
            return False

    def _backoff(self, attempt: int, body: str = "") -> float:
        return _suggested_delay(body) or self.initial_delay * (2 ** attempt)

    def generate(self, prompt: str) -> str:
        url = f"{self.host}/api/generate"
        payload = {"model": self.model, "prompt": prompt, "stream": False, "options": self.options}

        for attempt in range(self.max_retries + 1):
            last = attempt == self.max_retries
            try:
                r = self.session.post(url, json=payload, timeout=self.timeout)
            except (requests.ConnectionError, requests.Timeout) as e:
                if last:
                    raise SynthesisFailed(f"Generation request failed: {e}") from e
                delay = self._backoff(attempt)
                logger.warning(f"⚠️ Generation request failed ({e}); retrying in {delay:.0f}s "
                               f"(attempt {attempt + 1}/{self.max_retries})")
                time.sleep(delay)
                continue
            except requests.RequestException as e:
                raise SynthesisFailed(f"Generation request failed: {e}") from e

            if r.status_code in RETRYABLE_STATUS and not last:
                delay = self._backoff(attempt, r.text)
                logger.warning(f"⚠️ Generation returned {r.status_code}; retrying in {delay:.0f}s "
                               f"(attempt {attempt + 1}/{self.max_retries})")
                time.sleep(delay)
                continue
            if r.status_code == 404:
                raise SynthesisFailed(f"404: model '{self.model}' not registered in Ollama.")
            if r.status_code >= 400:
                raise SynthesisFailed(f"Generation failed with HTTP {r.status_code}: {r.text[:200]}")

            try:
                data = r.json()
            except ValueError as e:
                raise SynthesisFailed(f"Malformed generation response: {e}") from e
            return data.get("response") or data.get("text") or ""

        raise SynthesisFailed("Max retries exceeded")
