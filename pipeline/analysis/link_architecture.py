"""Internal link architecture analysis.

Builds a directed graph over the analyzed pages and scores four aspects:
link distribution, anchor text quality, navigation depth from the homepage
and link equity flow. Links to pages outside the analyzed set are counted
for totals but never become graph edges.
"""

import math
from collections import deque
from dataclasses import dataclass, field

import structlog

from pipeline.analysis.recommendations import Priority, Recommendation, sort_recommendations
from pipeline.crawler.url import url_key
from pipeline.models import PageAnalysisResult

logger = structlog.get_logger(__name__)

GENERIC_ANCHORS = frozenset(["click here", "read more", "learn more", "here", "this", "more"])

# Component weights for the overall score (total = 1.0)
LINK_WEIGHTS = {
    "distribution": 0.30,
    "anchor_text": 0.25,
    "navigation": 0.25,
    "equity": 0.20,
}


@dataclass
class LinkNode:
    url: str
    incoming: list[str] = field(default_factory=list)
    outgoing: list[str] = field(default_factory=list)


class LinkGraph:
    """Directed graph of internal links between analyzed pages.

    Nodes are keyed by ``url_key`` so ``https://www.a.com/x/`` and
    ``https://a.com/x`` resolve to the same page.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, LinkNode] = {}

    def add_page(self, url: str) -> None:
        self._nodes.setdefault(url_key(url), LinkNode(url=url))

    def node(self, url: str) -> LinkNode | None:
        return self._nodes.get(url_key(url))

    def add_edge(self, source: str, target: str) -> bool:
        """Record a link if both ends are analyzed pages."""
        source_node = self.node(source)
        target_node = self.node(target)
        if source_node is None or target_node is None:
            return False
        source_node.outgoing.append(target_node.url)
        target_node.incoming.append(source_node.url)
        return True

    def incoming_count(self, url: str) -> int:
        node = self.node(url)
        return len(node.incoming) if node else 0

    def outgoing_count(self, url: str) -> int:
        node = self.node(url)
        return len(node.outgoing) if node else 0

    def depths_from(self, start_url: str) -> dict[str, int]:
        """BFS click depth of every page reachable from ``start_url``."""
        start = self.node(start_url)
        if start is None:
            return {}

        depths: dict[str, int] = {}
        queue: deque[tuple[str, int]] = deque([(start.url, 0)])
        while queue:
            url, depth = queue.popleft()
            if url in depths:
                continue
            depths[url] = depth
            node = self.node(url)
            if node is None:
                continue
            for target in node.outgoing:
                if target not in depths:
                    queue.append((target, depth + 1))
        return depths

    def __len__(self) -> int:
        return len(self._nodes)


def build_link_graph(pages: list[PageAnalysisResult]) -> LinkGraph:
    graph = LinkGraph()
    for page in pages:
        graph.add_page(page.url)
    for page in pages:
        for link in page.internal_links:
            graph.add_edge(page.url, link.href)
    return graph


@dataclass
class LinkDistribution:
    total_internal_links: int
    average_links_per_page: float
    link_density: float  # links per 100 words
    orphan_pages: list[str]
    distribution_score: int

    def to_dict(self) -> dict:
        return {
            "total_internal_links": self.total_internal_links,
            "average_links_per_page": self.average_links_per_page,
            "link_density": self.link_density,
            "orphan_pages": self.orphan_pages,
            "distribution_score": self.distribution_score,
        }


@dataclass
class AnchorTextAnalysis:
    descriptive_anchors: int  # percentages, rounded
    exact_match_anchors: int
    generic_anchors: int
    anchor_variety: int
    anchor_text_score: int

    def to_dict(self) -> dict:
        return {
            "descriptive_anchors": self.descriptive_anchors,
            "exact_match_anchors": self.exact_match_anchors,
            "generic_anchors": self.generic_anchors,
            "anchor_variety": self.anchor_variety,
            "anchor_text_score": self.anchor_text_score,
        }


@dataclass
class NavigationStructure:
    max_depth_from_home: int
    average_depth_from_home: float
    breadcrumb_implementation: bool
    menu_structure: int
    navigation_score: int

    def to_dict(self) -> dict:
        return {
            "max_depth_from_home": self.max_depth_from_home,
            "average_depth_from_home": self.average_depth_from_home,
            "breadcrumb_implementation": self.breadcrumb_implementation,
            "menu_structure": self.menu_structure,
            "navigation_score": self.navigation_score,
        }


@dataclass
class HubPage:
    url: str
    incoming_links: int
    outgoing_links: int
    authority: float

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "incoming_links": self.incoming_links,
            "outgoing_links": self.outgoing_links,
            "authority": round(self.authority, 2),
        }


@dataclass
class LinkEquity:
    hub_pages: list[HubPage]
    link_equity_distribution: int
    internal_page_rank: list[tuple[str, float]]
    equity_score: int

    def to_dict(self) -> dict:
        return {
            "hub_pages": [h.to_dict() for h in self.hub_pages],
            "link_equity_distribution": self.link_equity_distribution,
            "internal_page_rank": [
                {"url": url, "score": score} for url, score in self.internal_page_rank
            ],
            "equity_score": self.equity_score,
        }


@dataclass
class LinkArchitectureAnalysis:
    """Complete link architecture result."""

    overall_score: int
    link_distribution: LinkDistribution
    anchor_text: AnchorTextAnalysis
    navigation: NavigationStructure
    link_equity: LinkEquity
    recommendations: list[Recommendation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "overall_score": self.overall_score,
            "link_distribution": self.link_distribution.to_dict(),
            "anchor_text_analysis": self.anchor_text.to_dict(),
            "navigation_structure": self.navigation.to_dict(),
            "link_equity_flow": self.link_equity.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


def _analyze_distribution(pages: list[PageAnalysisResult], graph: LinkGraph) -> LinkDistribution:
    total_links = sum(len(p.internal_links) for p in pages)
    average = total_links / len(pages) if pages else 0.0
    total_words = sum(p.word_count for p in pages)
    density = total_links / total_words * 100 if total_words else 0.0

    orphans = [p.url for p in pages if graph.incoming_count(p.url) == 0]

    score = 40 if 3 <= average <= 10 else 20
    score += 30 if 1 <= density <= 3 else 15
    score += 30 if not orphans else max(0, 30 - len(orphans) * 5)

    return LinkDistribution(
        total_internal_links=total_links,
        average_links_per_page=round(average, 1),
        link_density=round(density, 2),
        orphan_pages=orphans,
        distribution_score=min(100, score),
    )


def _analyze_anchor_text(pages: list[PageAnalysisResult]) -> AnchorTextAnalysis:
    anchors: list[str] = []
    descriptive = exact_match = generic = 0

    for page in pages:
        for link in page.internal_links:
            anchor = link.text.lower().strip()
            anchors.append(anchor)

            if anchor in GENERIC_ANCHORS:
                generic += 1
                continue
            if 3 <= len(anchor) <= 60:
                descriptive += 1
            # Short non-generic anchors are treated as keyword (exact-match) anchors
            if 0 < len(anchor.split()) <= 3:
                exact_match += 1

    total = len(anchors)
    if total == 0:
        return AnchorTextAnalysis(0, 0, 0, 0, anchor_text_score=15)

    descriptive_pct = descriptive / total * 100
    exact_pct = exact_match / total * 100
    generic_pct = generic / total * 100
    variety = len(set(anchors)) / total * 100

    score = 40 if descriptive_pct >= 70 else descriptive_pct * 0.57
    score += 30 if 20 <= exact_pct <= 40 else 15
    score += 30 if variety >= 60 else variety * 0.5

    return AnchorTextAnalysis(
        descriptive_anchors=round(descriptive_pct),
        exact_match_anchors=round(exact_pct),
        generic_anchors=round(generic_pct),
        anchor_variety=round(variety),
        anchor_text_score=min(100, round(score)),
    )


def _analyze_navigation(pages: list[PageAnalysisResult], graph: LinkGraph) -> NavigationStructure:
    if not pages:
        return NavigationStructure(0, 0.0, False, 0, 0)

    homepage = pages[0]
    depths = list(graph.depths_from(homepage.url).values())
    max_depth = max(depths) if depths else 0
    average_depth = sum(depths) / len(depths) if depths else 0.0

    menu_quality = min(100, graph.outgoing_count(homepage.url) * 15)
    breadcrumbs = False

    score = 40 if max_depth <= 3 else max(0, 40 - (max_depth - 3) * 10)
    score += 30 if average_depth <= 2 else 15
    score += 15 if breadcrumbs else 0
    score += min(15, menu_quality)

    return NavigationStructure(
        max_depth_from_home=max_depth,
        average_depth_from_home=round(average_depth, 1),
        breadcrumb_implementation=breadcrumbs,
        menu_structure=menu_quality,
        navigation_score=min(100, score),
    )


def _analyze_equity(pages: list[PageAnalysisResult], graph: LinkGraph) -> LinkEquity:
    if not pages:
        return LinkEquity([], 100, [], 0)

    authority = {p.url: math.log(graph.incoming_count(p.url) + 1) * 2 for p in pages}

    hubs = [
        HubPage(
            url=p.url,
            incoming_links=graph.incoming_count(p.url),
            outgoing_links=graph.outgoing_count(p.url),
            authority=authority[p.url],
        )
        for p in pages
    ]
    hubs = [h for h in hubs if h.authority >= 2 or h.outgoing_links >= 5]
    hubs.sort(key=lambda h: h.authority, reverse=True)
    hubs = hubs[:10]

    values = list(authority.values())
    highest, lowest = max(values), min(values)
    distribution = (1 - (highest - lowest) / highest) * 100 if highest > 0 else 100.0

    page_rank = sorted(
        ((url, round(score, 1)) for url, score in authority.items()),
        key=lambda item: item[1],
        reverse=True,
    )
    well_linked = sum(1 for _, score in page_rank if score >= 1)

    score = distribution * 0.4
    score += 30 if len(hubs) >= 3 else len(hubs) * 10
    score += well_linked / len(pages) * 30

    return LinkEquity(
        hub_pages=hubs,
        link_equity_distribution=round(distribution),
        internal_page_rank=page_rank,
        equity_score=min(100, round(score)),
    )


def _recommendations(
    pages: list[PageAnalysisResult],
    distribution: LinkDistribution,
    anchors: AnchorTextAnalysis,
    navigation: NavigationStructure,
    equity: LinkEquity,
) -> list[Recommendation]:
    recs: list[Recommendation] = []

    if distribution.average_links_per_page < 3:
        recs.append(
            Recommendation(
                category="link-distribution",
                priority=Priority.HIGH,
                title="Increase Internal Linking",
                description=(
                    f"Pages average only {distribution.average_links_per_page} internal links. "
                    "More linking improves SEO and user experience."
                ),
                action_items=[
                    "Add 3-5 relevant internal links per page",
                    "Link to related content and deeper pages",
                    "Create content clusters around key topics",
                    "Use contextual linking within content",
                ],
                impact=7,
                affected_pages=[p.url for p in pages if len(p.internal_links) < 3],
            )
        )

    if distribution.orphan_pages:
        recs.append(
            Recommendation(
                category="orphan-pages",
                priority=Priority.HIGH,
                title="Fix Orphan Pages",
                description=(
                    f"{len(distribution.orphan_pages)} pages have no incoming internal links "
                    "and may not be discoverable."
                ),
                action_items=[
                    "Link to orphan pages from relevant content",
                    "Add orphan pages to main navigation if appropriate",
                    "Create hub pages that link to related orphan content",
                    "Consider if orphan pages should be merged or removed",
                ],
                impact=8,
                affected_pages=list(distribution.orphan_pages),
            )
        )

    if anchors.generic_anchors > 30:
        recs.append(
            Recommendation(
                category="anchor-text",
                priority=Priority.MEDIUM,
                title="Improve Anchor Text Quality",
                description=(
                    f'{anchors.generic_anchors}% of anchor text is generic ("click here", '
                    '"read more").'
                ),
                action_items=[
                    "Replace generic anchor text with descriptive terms",
                    "Use keywords naturally in anchor text",
                    "Describe the linked page content in anchor text",
                ],
                impact=5,
                affected_pages=[
                    p.url
                    for p in pages
                    if any(
                        link.text.lower().strip() in GENERIC_ANCHORS for link in p.internal_links
                    )
                ],
            )
        )

    if navigation.max_depth_from_home > 3:
        recs.append(
            Recommendation(
                category="navigation-depth",
                priority=Priority.MEDIUM,
                title="Reduce Navigation Depth",
                description=(
                    f"Some pages are {navigation.max_depth_from_home} clicks from the homepage, "
                    "making them hard to discover."
                ),
                action_items=[
                    "Add direct links from homepage to important deep pages",
                    "Create category pages that group related content",
                    "Implement breadcrumb navigation",
                ],
                impact=6,
            )
        )

    if len(equity.hub_pages) < 3:
        recs.append(
            Recommendation(
                category="link-equity",
                priority=Priority.MEDIUM,
                title="Create Content Hub Pages",
                description=(
                    "Your site lacks strong hub pages that distribute link equity effectively."
                ),
                action_items=[
                    "Create topic cluster hub pages",
                    "Link hub pages to related subtopic pages",
                    "Link to hub pages from the main navigation",
                ],
                impact=6,
                affected_pages=[p.url for p in pages[:5]],
            )
        )

    return sort_recommendations(recs)


def analyze_link_architecture(pages: list[PageAnalysisResult]) -> LinkArchitectureAnalysis:
    """
    Score the internal link structure of a set of analyzed pages.

    ``pages[0]`` is taken to be the homepage for depth calculations.

    Args:
        pages: Analyzed pages, homepage first

    Returns:
        LinkArchitectureAnalysis with component scores and recommendations
    """
    graph = build_link_graph(pages)

    distribution = _analyze_distribution(pages, graph)
    anchors = _analyze_anchor_text(pages)
    navigation = _analyze_navigation(pages, graph)
    equity = _analyze_equity(pages, graph)

    overall = round(
        distribution.distribution_score * LINK_WEIGHTS["distribution"]
        + anchors.anchor_text_score * LINK_WEIGHTS["anchor_text"]
        + navigation.navigation_score * LINK_WEIGHTS["navigation"]
        + equity.equity_score * LINK_WEIGHTS["equity"]
    )

    logger.debug(
        "link_architecture_analyzed",
        pages=len(pages),
        orphans=len(distribution.orphan_pages),
        score=overall,
    )

    return LinkArchitectureAnalysis(
        overall_score=overall,
        link_distribution=distribution,
        anchor_text=anchors,
        navigation=navigation,
        link_equity=equity,
        recommendations=_recommendations(pages, distribution, anchors, navigation, equity),
    )
