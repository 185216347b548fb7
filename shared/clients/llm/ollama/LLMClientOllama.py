from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ MODELS ##################
    def _get_default_chat_model(self) -> str:
        return "llama3.1:8b"

    def _get_default_reasoning_model(self) -> str:
        return "llama3.1:70b"

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # root on ollama
        return ""

    def _get_endpoint_models(self) -> str:
        return "/api/tags"

    def _get_endpoint_generate(self, model: str) -> str:
        # model is addressed in the body
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_generate_payload(self, prompt: str, model: str, system_instruction: str | None = None, history: list[dict] | None = None) -> dict:
        """Build the Ollama chat request body.

        Returns:
            dict: {"model": "...", "messages": [...], "stream": False}
        """
        messages: list[dict] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        for turn in history or []:
            content = turn.get("content")
            if content:
                messages.append({"role": self.normalize_role(turn.get("role", "user")), "content": content})
        messages.append({"role": "user", "content": prompt})
        return {"model": model, "messages": messages, "stream": False}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_generated_text(self, response_data: dict) -> str:
        message = response_data.get("message", {})
        content = message.get("content")
        if content is None:
            raise ValueError(
                "Ollama chat response does not contain a valid message. "
                "Response keys: %s" % list(response_data.keys())
            )
        return content
