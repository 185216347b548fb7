from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientGemini(LLMClientInterface):
    """Google Gemini over the public generativelanguage REST API."""

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

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://generativelanguage.googleapis.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="API_VERSION", val_type="string", default="v1beta"),
        ]

    ################ MODELS ##################
    def _get_default_chat_model(self) -> str:
        return "gemini-1.5-flash"

    def _get_default_reasoning_model(self) -> str:
        return "gemini-1.5-pro"

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/{self._api_version}/models"

    def _get_endpoint_models(self) -> str:
        return f"/{self._api_version}/models"

    def _get_endpoint_generate(self, model: str) -> str:
        return f"/{self._api_version}/models/{model}:generateContent"

    ################ PAYLOAD BUILDER ##################
    def get_generate_payload(self, prompt: str, model: str, system_instruction: str | None = None, history: list[dict] | None = None) -> dict:
        """Build the Gemini generateContent request body.

        Gemini names the assistant role "model" and takes the system prompt
        as a separate systemInstruction block.
        """
        contents: list[dict] = []
        for turn in history or []:
            content = turn.get("content")
            if not content:
                continue
            role = "model" if self.normalize_role(turn.get("role", "user")) == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": content}]})
        contents.append({"role": "user", "parts": [{"text": prompt}]})

        payload: dict = {"contents": contents}
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return payload

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_generated_text(self, response_data: dict) -> str:
        """Extract the reply text from a generateContent response.

        Raises:
            ValueError: If the prompt or the candidate was blocked, or no text was returned.
        """
        block_reason = (response_data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise ValueError(f"Gemini request blocked: {block_reason}")

        candidates = response_data.get("candidates") or []
        if not candidates:
            raise ValueError("Gemini response does not contain any candidates. Response keys: %s" % list(response_data.keys()))

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text:
            finish_reason = candidate.get("finishReason", "UNKNOWN")
            if finish_reason in ("SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT"):
                raise ValueError(f"Gemini response blocked, finish reason: {finish_reason.lower()}")
            raise ValueError(f"Gemini response contains no text, finish reason: {finish_reason}")
        return text
