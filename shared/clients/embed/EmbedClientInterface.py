from abc import abstractmethod

import httpx
from typing import Tuple
from shared.clients.ClientInterface import ClientInterface

from shared.helper.HelperConfig import HelperConfig

class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model())
        self.embed_model_max_chars = helper_config.get_number_val(f"{self.get_client_type().upper()}_MODEL_MAX_CHARS", default=0)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the embedding model used when EMBED_MODEL is not set.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_models(self) -> str:
        """
        Returns the endpoint path for model listing requests.

        Returns:
            str: The endpoint path for model listing requests (e.g. "/api/tags")
        """
        pass

    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}
        - Gemini batchEmbedContents: {"embeddings": [{"values": [...]}, ...]}

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response format is invalid or embeddings are empty.
        """
        pass

    def _prepare_texts(self, texts: list[str] | str) -> list[str]:
        texts = [texts] if isinstance(texts, str) else list(texts)
        if self.embed_model_max_chars:
            texts = [text[: int(self.embed_model_max_chars)] for text in texts]
        return texts

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_models(self) -> httpx.Response:
        """Fetch the list of available embedding models from the backend.

        Returns:
            httpx.Response: The response containing the model list.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_models())

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """
        Determine the output vector dimension and distance metric of the configured embedding model.

        Embeds a short probe text and measures the returned vector, which works
        for every backend regardless of whether it publishes model details.

        Returns:
            Tuple[int, str]: The number of dimensions produced by the embedding model and the distance metric.
        """
        vectors = await self.do_embed("dimension probe")
        return len(vectors[0]), self.embed_distance

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        Normalises the input to a list, builds the backend-specific payload via
        get_embed_payload(), sends the request, validates the status, and extracts
        the vectors via extract_embeddings_from_response().

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            ClientRequestError: If the HTTP request fails.
            ValueError: If the response does not contain valid embeddings.
        """
        texts = self._prepare_texts(texts)
        if not texts:
            return []
        body = self.get_embed_payload(texts)
        response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body, raise_on_error=True)
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(texts):
            raise ValueError("Embedding backend returned %d vectors for %d texts." % (len(vectors), len(texts)))
        return vectors
