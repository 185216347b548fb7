from abc import abstractmethod
from typing import Any

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    """Vector store backend. Points are {"id", "vector", "payload"} dicts; filters are
    equality conditions on payload keys, e.g. {"owner_id": "u1", "file_id": "f1"}."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_existence_check(self) -> bool:
        """Check if the collection exists in the rag backend.

        Returns:
            bool: True if the collection exists, False otherwise.
        """
        pass

    @abstractmethod
    async def do_create_collection(self, vector_size: int = 768, distance: str = "Cosine") -> None:
        """Create the collection in the rag backend.

        Args:
            vector_size (int): The size of the vectors in the collection.
            distance (str): The distance metric for the vectors.
        """
        pass

    @abstractmethod
    async def do_upsert_points(self, points: list[dict[str, Any]]) -> None:
        """Upsert points into the rag backend collection.
        Inserts new points or replaces existing ones if a point with the same ID already exists.

        Args:
            points (list[dict[str, Any]]): The list of points to upsert.
        """
        pass

    @abstractmethod
    async def do_delete_points_by_filter(self, conditions: dict[str, str]) -> None:
        """Deletes all points whose payload matches every condition.

        Args:
            conditions (dict[str, str]): Payload key/value pairs, e.g. {"file_id": "f1"}.
        """
        pass

    @abstractmethod
    async def do_search(self, vector: list[float], limit: int, conditions: dict[str, str] | None = None) -> list[dict]:
        """Nearest-neighbour search, filtered before ranking.

        Args:
            vector (list[float]): The query embedding.
            limit (int): Maximum number of hits to return.
            conditions (dict[str, str] | None): Payload key/value pairs every hit must match.

        Returns:
            list[dict]: Hits as {"id", "score", "payload"}, ordered by descending score.
        """
        pass

    @abstractmethod
    async def do_count(self, conditions: dict[str, str] | None = None) -> int:
        """Count the points matching the given conditions (all points when None).

        Returns:
            int: Total number of matching points.
        """
        pass

    async def do_ensure_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        """Create the collection unless it already exists."""
        if await self.do_existence_check():
            self.logging.debug("RAG collection on '%s' already exists.", self.get_engine_name())
            return
        await self.do_create_collection(vector_size=vector_size, distance=distance)
        self.logging.info("Created RAG collection on '%s' (size=%d, distance=%s).", self.get_engine_name(), vector_size, distance)
