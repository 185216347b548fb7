from shared.helper.HelperConfig import HelperConfig
from shared.clients.websearch.WebSearchClientInterface import WebSearchClientInterface


class WebSearchClientManager:
    """Manager class to instantiate the configured web search client."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        engine = self.helper_config.get_string_val("WEBSEARCH_ENGINE", default="duckduckgo")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> WebSearchClientInterface:
        """Instantiate the web search client for the configured engine.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"WebSearchClient{engine}"
        try:
            module = __import__(
                f"shared.clients.websearch.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError("Unsupported web search engine '%s'. Error: %s" % (engine, e))
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated web search client for engine: %s", engine)
        return client

    def get_client(self) -> WebSearchClientInterface:
        return self.client
