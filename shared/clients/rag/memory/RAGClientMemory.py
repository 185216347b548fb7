"""In-process vector store with cosine similarity.

Writes are serialised with an asyncio.Lock. Searches rank a snapshot of the
stored points, so a delete that lands during a search may still be visible
to that search.
"""

import asyncio
from typing import Any

import httpx
import numpy as np

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class RAGClientMemory(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._points: dict[str, tuple[np.ndarray, dict]] = {}
        self._vector_size: int | None = None
        self._lock = asyncio.Lock()
        self._booted = False

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Memory"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return []

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return "memory://local"

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def is_booted(self) -> bool:
        return self._booted

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self) -> None:
        self._booted = True

    async def close(self) -> None:
        self._booted = False

    async def do_healthcheck(self) -> httpx.Response:
        return httpx.Response(200, json={"status": "ok", "points": len(self._points)})

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        return self._vector_size is not None

    async def do_create_collection(self, vector_size: int = 768, distance: str = "Cosine") -> None:
        if distance.lower() != "cosine":
            raise ValueError(f"Memory RAG engine only supports Cosine distance, got '{distance}'.")
        self._vector_size = vector_size

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> None:
        prepared: list[tuple[str, np.ndarray, dict]] = []
        for point in points:
            vector = np.asarray(point["vector"], dtype=np.float32)
            if self._vector_size is not None and vector.shape[0] != self._vector_size:
                raise ValueError(f"Vector size mismatch: expected {self._vector_size}, got {vector.shape[0]}.")
            prepared.append((str(point["id"]), vector, dict(point.get("payload") or {})))

        async with self._lock:
            for point_id, vector, payload in prepared:
                self._points[point_id] = (vector, payload)

    async def do_delete_points_by_filter(self, conditions: dict[str, str]) -> None:
        if not conditions:
            raise ValueError("Refusing to delete points without a filter.")
        async with self._lock:
            doomed = [pid for pid, (_, payload) in self._points.items() if self._matches(payload, conditions)]
            for pid in doomed:
                del self._points[pid]
        self.logging.debug("Deleted %d points from memory store for %s.", len(doomed), conditions)

    async def do_search(self, vector: list[float], limit: int, conditions: dict[str, str] | None = None) -> list[dict]:
        if limit <= 0:
            return []
        snapshot = list(self._points.items())
        candidates = [(pid, vec, payload) for pid, (vec, payload) in snapshot if self._matches(payload, conditions)]
        if not candidates:
            return []

        query = np.asarray(vector, dtype=np.float32)
        matrix = np.vstack([vec for _, vec, _ in candidates])
        scores = self._cosine_scores(query, matrix)

        order = np.argsort(-scores, kind="stable")[:limit]
        return [
            {"id": candidates[i][0], "score": float(scores[i]), "payload": candidates[i][2]}
            for i in order
        ]

    async def do_count(self, conditions: dict[str, str] | None = None) -> int:
        if not conditions:
            return len(self._points)
        return sum(1 for _, payload in self._points.values() if self._matches(payload, conditions))

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def _matches(payload: dict, conditions: dict[str, str] | None) -> bool:
        if not conditions:
            return True
        return all(str(payload.get(key)) == str(value) for key, value in conditions.items())

    @staticmethod
    def _cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
        """Cosine similarity of every row against the query, clamped to [0, 1]."""
        query_norm = np.linalg.norm(query)
        row_norms = np.linalg.norm(matrix, axis=1)
        denom = row_norms * query_norm
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(denom > 0, matrix @ query / denom, 0.0)
        return np.clip(scores, 0.0, 1.0)
