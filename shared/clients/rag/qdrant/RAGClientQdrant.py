import json
from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default="documents", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default="documents")
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_points(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_delete_points(self) -> str:
        return f"/collections/{self._collection_name}/points/delete"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_create_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_count(self) -> str:
        return f"/collections/{self._collection_name}/points/count"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_filter(self, conditions: dict[str, str] | None) -> dict | None:
        if not conditions:
            return None
        return {"must": [{"key": key, "match": {"value": value}} for key, value in conditions.items()]}

    def get_search_payload(self, vector: list[float], limit: int, conditions: dict[str, str] | None) -> dict:
        payload: dict = {"vector": vector, "limit": limit, "with_payload": True, "with_vector": False}
        query_filter = self.get_filter(conditions)
        if query_filter:
            payload["filter"] = query_filter
        return payload

    def get_count_payload(self, conditions: dict[str, str] | None) -> dict:
        payload: dict = {"exact": True}
        query_filter = self.get_filter(conditions)
        if query_filter:
            payload["filter"] = query_filter
        return payload

    def get_delete_payload(self, conditions: dict[str, str]) -> dict:
        return {"filter": self.get_filter(conditions)}

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_check_collection_existence(), raise_on_error=True)
        return bool(resp.json().get("result", {}).get("exists"))

    async def do_create_collection(self, vector_size: int = 768, distance: str = "Cosine") -> None:
        await self.do_request(
            method="PUT",
            json={
                "vectors": {
                    "size": vector_size,
                    "distance": distance}},
            endpoint=self._get_endpoint_create_collection(),
            raise_on_error=True)

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> None:
        await self.do_request(
            method="PUT",
            content=json.dumps({"points": points}),
            endpoint=self._get_endpoint_points(),
            params={"wait": "true"},
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True)

    async def do_delete_points_by_filter(self, conditions: dict[str, str]) -> None:
        if not conditions:
            raise ValueError("Refusing to delete points without a filter.")
        await self.do_request(
            method="POST",
            content=json.dumps(self.get_delete_payload(conditions)),
            endpoint=self._get_endpoint_delete_points(),
            params={"wait": "true"},
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )

    async def do_search(self, vector: list[float], limit: int, conditions: dict[str, str] | None = None) -> list[dict]:
        resp = await self.do_request(
            method="POST",
            content=json.dumps(self.get_search_payload(vector, limit, conditions)),
            endpoint=self._get_endpoint_search(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        hits = resp.json().get("result", []) or []
        return [
            {"id": hit.get("id"), "score": float(hit.get("score", 0.0)), "payload": hit.get("payload") or {}}
            for hit in hits[:limit]
        ]

    async def do_count(self, conditions: dict[str, str] | None = None) -> int:
        resp = await self.do_request(
            method="POST",
            content=json.dumps(self.get_count_payload(conditions)),
            endpoint=self._get_endpoint_count(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        return resp.json().get("result", {}).get("count", 0)
