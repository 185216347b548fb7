from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.websearch import WebSearchResponse


class WebSearchClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.max_results = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MAX_RESULTS", default=10))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "websearch"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_search(self, query: str, kind: str = "text", options: dict | None = None) -> WebSearchResponse:
        """Run a web search.

        Transport problems and rate limiting are reported on the response
        (error / rate_limited) instead of being raised.

        Args:
            query (str): The search query.
            kind (str): Search vertical. Only "text" is supported.
            options (dict | None): Engine options, e.g. {"max_results": 5, "region": "de-de"}.

        Returns:
            WebSearchResponse: Results in engine ranking order.
        """
        pass
