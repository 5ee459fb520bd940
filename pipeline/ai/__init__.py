"""AI package: chat-completion clients, suggestion generation and caching."""

# Lazy imports to avoid requiring all dependencies at import time
# Use explicit imports when needed:
# from pipeline.ai.client import AIClient, OpenAIClient, MockAIClient, get_ai_client
# from pipeline.ai.suggestions import SuggestionService
# from pipeline.ai.site_overview import SiteOverviewService
# from pipeline.ai.competitor_insights import CompetitorInsightsService
# from pipeline.ai.alt_text import AltTextService, AltTextContext
# from pipeline.ai.cache import SuggestionCache, InMemorySuggestionCache, RedisSuggestionCache

__all__ = [
    # Clients
    "AIClient",
    "OpenAIClient",
    "MockAIClient",
    "get_ai_client",
    # Services
    "SuggestionService",
    "SiteOverviewService",
    "CompetitorInsightsService",
    "AltTextService",
    "AltTextContext",
    # Cache
    "SuggestionCache",
    "InMemorySuggestionCache",
    "RedisSuggestionCache",
    "get_suggestion_cache",
]
