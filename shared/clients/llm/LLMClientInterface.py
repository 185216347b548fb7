from abc import abstractmethod

import httpx
from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model tiers: fast chat model and higher-capability reasoning model
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default=self._get_default_chat_model())
        self.reasoning_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_REASONING_MODEL", default=self._get_default_reasoning_model())

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ MODELS ##################
    @abstractmethod
    def _get_default_chat_model(self) -> str:
        """Returns the model used for the fast chat tier when LLM_CHAT_MODEL is not set."""
        pass

    @abstractmethod
    def _get_default_reasoning_model(self) -> str:
        """Returns the model used for the reasoning tier when LLM_REASONING_MODEL is not set."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_models(self) -> str:
        """Returns the endpoint path for model listing requests (e.g. "/api/tags")."""
        pass

    @abstractmethod
    def _get_endpoint_generate(self, model: str) -> str:
        """Returns the endpoint path for generation requests against the given model (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_generate_payload(self, prompt: str, model: str, system_instruction: str | None = None, history: list[dict] | None = None) -> dict:
        """Build the backend-specific request body for a generation request.

        Args:
            prompt (str): The user prompt for this turn.
            model (str): The model name to address.
            system_instruction (str | None): Optional system prompt.
            history (list[dict] | None): Prior turns as {"role": "user" | "assistant", "content": "..."}.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_generated_text(self, response_data: dict) -> str:
        """Extract the model reply text from a raw generation API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            str: The reply text.

        Raises:
            ValueError: If the response does not contain a reply (e.g. it was blocked).
        """
        pass

    @staticmethod
    def normalize_role(role: str) -> str:
        """Map the roles used by chat history records onto "user" / "assistant"."""
        role = (role or "").lower()
        if role in ("assistant", "model", "bot", "ai"):
            return "assistant"
        return "user"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_models(self) -> httpx.Response:
        """Fetch the list of available models from the backend."""
        return await self.do_request(method="GET", endpoint=self._get_endpoint_models())

    async def do_generate(self, prompt: str, model: str | None = None, system_instruction: str | None = None, history: list[dict] | None = None) -> str:
        """Send a generation request and return the reply text.

        Args:
            prompt (str): The user prompt for this turn.
            model (str | None): The model to address, defaults to the chat tier model.
            system_instruction (str | None): Optional system prompt.
            history (list[dict] | None): Prior turns of the conversation.

        Returns:
            str: The trimmed reply text.

        Raises:
            ClientRequestError: If the HTTP request fails.
            ValueError: If the response does not contain a valid reply.
        """
        model = model or self.chat_model
        body = self.get_generate_payload(prompt, model, system_instruction=system_instruction, history=history)
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_generate(model),
            json=body,
            raise_on_error=True,
        )
        return self.extract_generated_text(response.json()).strip()
