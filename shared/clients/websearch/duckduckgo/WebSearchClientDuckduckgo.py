"""DuckDuckGo web search without an API key.

Queries the Lite endpoint first (less ad noise) and falls back to the HTML
endpoint when Lite yields nothing. Result pages are parsed with regular
expressions; DuckDuckGo redirect links are unwrapped and ad links dropped.
"""

import html as _html
import re
import urllib.parse

import httpx

from shared.clients.websearch.WebSearchClientInterface import WebSearchClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.websearch import WebSearchResponse, WebSearchResult

# DuckDuckGo answers throttled clients with 202 and an anomaly page
_RATE_LIMIT_STATUSES = (202, 403, 429)


def _strip_tags(s: str) -> str:
    s = re.sub(r"<script[\s\S]*?</script>", " ", s, flags=re.I)
    s = re.sub(r"<style[\s\S]*?</style>", " ", s, flags=re.I)
    s = re.sub(r"<[^>]+>", " ", s)
    s = _html.unescape(s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _unwrap_ddg_redirect(u: str) -> str:
    if u.startswith("//"):
        u = "https:" + u
    parsed = urllib.parse.urlparse(u)
    if "duckduckgo.com" in parsed.netloc and parsed.path.startswith("/l/"):
        uddg = urllib.parse.parse_qs(parsed.query).get("uddg", [None])[0]
        if uddg:
            return urllib.parse.unquote(uddg)
    return u


def _is_ad_url(u: str) -> bool:
    lu = u.lower()
    return (
        "duckduckgo.com/y.js" in lu
        or "ad_domain=" in lu
        or "bing.com/aclick" in lu
        or "doubleclick.net" in lu
        or "googleadservices" in lu
    )


def _collect(links: list[tuple[str, str]], snippets: list[str], max_results: int) -> list[WebSearchResult]:
    results: list[WebSearchResult] = []
    for i, (href, title_html) in enumerate(links):
        if len(results) >= max_results:
            break
        url = _unwrap_ddg_redirect(_html.unescape(href))
        if not url or _is_ad_url(url):
            continue
        title = _strip_tags(title_html)
        if not title:
            continue
        snippet = _strip_tags(snippets[i]) if i < len(snippets) else ""
        results.append(WebSearchResult(title=title, url=url, snippet=snippet))
    return results


def parse_ddg_lite(page: str, max_results: int) -> list[WebSearchResult]:
    link_pattern = re.compile(r'<a[^>]+class=["\']result-link["\'][^>]*href="([^"]+)"[^>]*>(.*?)</a>|<a[^>]+href="([^"]+)"[^>]*class=["\']result-link["\'][^>]*>(.*?)</a>', re.I | re.S)
    snip_pattern = re.compile(r'<td[^>]+class=["\']result-snippet["\'][^>]*>(.*?)</td>', re.I | re.S)

    links = [(m[0] or m[2], m[1] or m[3]) for m in link_pattern.findall(page)]
    return _collect(links, snip_pattern.findall(page), max_results)


def parse_ddg_html(page: str, max_results: int) -> list[WebSearchResult]:
    link_pattern = re.compile(
        r'<a[^>]+class="[^"]*result__a[^"]*"[^>]+href="([^"]+)"[^>]*>(.*?)</a>',
        re.I | re.S,
    )
    snip_pattern = re.compile(
        r'<(?:a|div)[^>]+class="[^"]*result__snippet[^"]*"[^>]*>(.*?)</(?:a|div)>',
        re.I | re.S,
    )
    return _collect(link_pattern.findall(page), snip_pattern.findall(page), max_results)


class WebSearchClientDuckduckgo(WebSearchClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://lite.duckduckgo.com", val_type="string")
        self._html_url = self.get_config_val("HTML_URL", default="https://html.duckduckgo.com/html/", val_type="string")
        self._user_agent = self.get_config_val("USER_AGENT", default="Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko)", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Duckduckgo"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://lite.duckduckgo.com"),
            EnvConfig(env_key="HTML_URL", val_type="string", default="https://html.duckduckgo.com/html/"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"User-Agent": self._user_agent}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/lite/"

    def _get_endpoint_lite(self) -> str:
        return "/lite/"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_search(self, query: str, kind: str = "text", options: dict | None = None) -> WebSearchResponse:
        query = (query or "").strip()
        options = options or {}
        if kind != "text":
            return WebSearchResponse(query=query, provider="duckduckgo", error=f"Unsupported search kind '{kind}'.")
        if not query:
            return WebSearchResponse(query=query, provider="duckduckgo_lite")

        max_results = max(1, min(self.max_results, int(options.get("max_results") or self.max_results)))
        params = {"q": query}
        if options.get("region"):
            params["kl"] = options["region"]

        try:
            # 1) Lite first
            lite = await self.do_request(method="GET", endpoint=self._get_endpoint_lite(), params=params)
            if lite.status_code in _RATE_LIMIT_STATUSES:
                self.logging.warning("DuckDuckGo rate limited the search for %r (status %d).", query[:80], lite.status_code)
                return WebSearchResponse(query=query, provider="duckduckgo_lite", rate_limited=True, error=f"rate limited (status {lite.status_code})")
            results = parse_ddg_lite(lite.text, max_results) if lite.status_code == 200 else []
            provider = "duckduckgo_lite"

            # 2) HTML fallback if Lite produced nothing (format change / block)
            if not results:
                page = await self.do_request(method="POST", endpoint=self._html_url, data=params)
                provider = "duckduckgo_html"
                if page.status_code in _RATE_LIMIT_STATUSES:
                    self.logging.warning("DuckDuckGo HTML endpoint rate limited the search for %r.", query[:80])
                    return WebSearchResponse(query=query, provider=provider, rate_limited=True, error=f"rate limited (status {page.status_code})")
                if page.status_code == 200:
                    results = parse_ddg_html(page.text, max_results)
        except httpx.HTTPError as e:
            self.logging.error("DuckDuckGo search failed for %r: %s", query[:80], e)
            return WebSearchResponse(query=query, provider="duckduckgo", error=str(e) or e.__class__.__name__)

        self.logging.debug("DuckDuckGo returned %d results for %r via %s.", len(results), query[:80], provider)
        return WebSearchResponse(query=query, provider=provider, results=results)
