from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientGemini(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._api_version = self.get_config_val("API_VERSION", default="v1beta", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Gemini"

    def _get_default_model(self) -> str:
        return "text-embedding-004"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://generativelanguage.googleapis.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="API_VERSION", val_type="string", default="v1beta"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/{self._api_version}/models/{self.embed_model}"

    def _get_endpoint_models(self) -> str:
        return f"/{self._api_version}/models"

    def get_endpoint_embedding(self) -> str:
        return f"/{self._api_version}/models/{self.embed_model}:batchEmbedContents"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the batchEmbedContents body, one request per text."""
        model_path = f"models/{self.embed_model}"
        return {
            "requests": [
                {"model": model_path, "content": {"parts": [{"text": text}]}}
                for text in texts
            ]
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        embeddings = response_data.get("embeddings") or []
        vectors = [item.get("values") for item in embeddings]
        if not vectors or not all(vectors):
            raise ValueError(
                "Gemini response does not contain valid embeddings. "
                f"Response keys: {list(response_data.keys())}"
            )
        return vectors
