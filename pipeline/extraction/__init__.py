"""Extraction library: stateless functions over a parsed document."""

# Lazy imports - use explicit imports when needed:
# from pipeline.extraction.basic import extract_basic_seo, BasicSeoElements
# from pipeline.extraction.content import extract_content, ContentElements
# from pipeline.extraction.links import extract_links
# from pipeline.extraction.cta import extract_cta_elements
# from pipeline.extraction.cards import extract_card_elements
# from pipeline.extraction.rules import EXTRACTION_RULES_VERSION

__all__ = [
    "extract_basic_seo",
    "BasicSeoElements",
    "extract_content",
    "ContentElements",
    "extract_links",
    "extract_cta_elements",
    "extract_card_elements",
    "EXTRACTION_RULES_VERSION",
]
