"""Cross-page content quality: duplication, keyword stuffing and per-page quality.

Three signals combined into one 0-100 score:
  uniqueness=40%, keyword health=30%, quality (readability + depth)=30%
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from pipeline.analysis.recommendations import Priority, Recommendation
from pipeline.models import PageAnalysisResult

logger = structlog.get_logger(__name__)

CONTENT_WEIGHTS = {
    "uniqueness": 0.4,
    "keywords": 0.3,
    "quality": 0.3,
}

# Keyword density thresholds (percent of page words)
STUFFING_CRITICAL = 5.0
STUFFING_HIGH = 3.0

NEAR_DUPLICATE_THRESHOLD = 0.8
SHINGLE_SIZE = 3
MIN_PARAGRAPH_WORDS = 8
MAX_PARAGRAPHS_PER_PAGE = 30
MAX_RECOMMENDATIONS = 6

TOP_PERFORMER_SCORE = 75
NEEDS_IMPROVEMENT_SCORE = 60

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\s]")


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip().lower()


def _shingles(text: str) -> set[tuple[str, ...]]:
    words = _NON_WORD.sub(" ", text.lower()).split()
    if len(words) < SHINGLE_SIZE:
        return {tuple(words)} if words else set()
    return {tuple(words[i : i + SHINGLE_SIZE]) for i in range(len(words) - SHINGLE_SIZE + 1)}


def jaccard(a: set, b: set) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


@dataclass
class DuplicateGroup:
    """A piece of content shared by several pages."""

    element: str  # title, description, h1, paragraph
    content: str
    urls: list[str]
    similarity_score: int
    duplication_type: str  # exact, near, boilerplate
    impact_level: Priority

    def to_dict(self) -> dict:
        return {
            "element": self.element,
            "content": self.content[:200],
            "urls": self.urls,
            "similarity_score": self.similarity_score,
            "duplication_type": self.duplication_type,
            "impact_level": self.impact_level.value,
        }


@dataclass
class KeywordIssue:
    """A keyword used so often on some page that it reads as stuffing."""

    keyword: str
    density: float
    occurrences: int
    impact_level: Priority
    affected_pages: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "keyword": self.keyword,
            "density": round(self.density, 2),
            "occurrences": self.occurrences,
            "impact_level": self.impact_level.value,
            "affected_pages": self.affected_pages,
        }


@dataclass
class PageQuality:
    url: str
    readability: float
    depth: float

    @property
    def overall(self) -> float:
        return (self.readability + self.depth) / 2

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "readability": round(self.readability, 1),
            "depth": round(self.depth, 1),
            "overall": round(self.overall, 1),
        }


@dataclass
class ContentQualityAnalysis:
    """Complete content quality result."""

    duplicate_groups: list[DuplicateGroup]
    uniqueness_score: int
    keyword_issues: list[KeywordIssue]
    keyword_health_score: int
    quality_score: int
    combined_score: int
    top_performers: list[PageQuality] = field(default_factory=list)
    needs_improvement: list[PageQuality] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    pages_analyzed: int = 0

    @property
    def overall_score(self) -> int:
        return self.combined_score

    def duplicates_for(self, element: str) -> list[DuplicateGroup]:
        return [g for g in self.duplicate_groups if g.element == element]

    def to_dict(self) -> dict:
        return {
            "content_uniqueness": {
                "duplicate_content": {
                    "titles": [g.to_dict() for g in self.duplicates_for("title")],
                    "descriptions": [g.to_dict() for g in self.duplicates_for("description")],
                    "headings": [g.to_dict() for g in self.duplicates_for("h1")],
                    "paragraphs": [g.to_dict() for g in self.duplicates_for("paragraph")],
                },
                "uniqueness_score": self.uniqueness_score,
                "total_duplicates": len(self.duplicate_groups),
                "pages_analyzed": self.pages_analyzed,
            },
            "keyword_quality": {
                "over_optimization": [k.to_dict() for k in self.keyword_issues],
                "health_score": self.keyword_health_score,
                "affected_pages": len(
                    {url for issue in self.keyword_issues for url in issue.affected_pages}
                ),
            },
            "quality_scores": {
                "average": self.quality_score,
                "top_performers": [p.to_dict() for p in self.top_performers],
                "needs_improvement": [p.to_dict() for p in self.needs_improvement],
            },
            "strategic_recommendations": [r.to_dict() for r in self.recommendations],
            "overall_health": {
                "content_score": self.uniqueness_score,
                "keyword_score": self.keyword_health_score,
                "quality_score": self.quality_score,
                "combined_score": self.combined_score,
            },
        }


# =============================================================================
# Duplication
# =============================================================================


def _exact_duplicates(
    pages: list[PageAnalysisResult],
    element: str,
    values_for: Callable[[PageAnalysisResult], list[str]],
) -> list[DuplicateGroup]:
    by_text: dict[str, tuple[str, list[str]]] = {}
    for page in pages:
        for value in values_for(page):
            key = _normalize(value)
            if not key:
                continue
            original, urls = by_text.setdefault(key, (value.strip(), []))
            if page.url not in urls:
                urls.append(page.url)

    groups = []
    for original, urls in by_text.values():
        if len(urls) < 2:
            continue
        boilerplate = element == "paragraph" and len(urls) >= 3 and len(urls) > len(pages) / 2
        groups.append(
            DuplicateGroup(
                element=element,
                content=original,
                urls=urls,
                similarity_score=100,
                duplication_type="boilerplate" if boilerplate else "exact",
                impact_level=Priority.HIGH if element in ("title", "h1") else Priority.MEDIUM,
            )
        )
    return groups


def _candidate_paragraphs(page: PageAnalysisResult) -> list[str]:
    paragraphs = [p for p in page.paragraphs if len(p.split()) >= MIN_PARAGRAPH_WORDS]
    return paragraphs[:MAX_PARAGRAPHS_PER_PAGE]


def _near_duplicates(pages: list[PageAnalysisResult]) -> list[DuplicateGroup]:
    """Cluster paragraphs from different pages whose shingle overlap is high."""
    clusters: list[tuple[str, set, list[str], float]] = []

    for page in pages:
        for paragraph in _candidate_paragraphs(page):
            shingles = _shingles(paragraph)
            for i, (text, rep_shingles, urls, best) in enumerate(clusters):
                if page.url in urls or _normalize(text) == _normalize(paragraph):
                    continue
                similarity = jaccard(shingles, rep_shingles)
                if similarity >= NEAR_DUPLICATE_THRESHOLD:
                    urls.append(page.url)
                    clusters[i] = (text, rep_shingles, urls, min(best, similarity))
                    break
            else:
                clusters.append((paragraph, shingles, [page.url], 1.0))

    return [
        DuplicateGroup(
            element="paragraph",
            content=text,
            urls=urls,
            similarity_score=round(similarity * 100),
            duplication_type="near",
            impact_level=Priority.MEDIUM,
        )
        for text, _, urls, similarity in clusters
        if len(urls) >= 2
    ]


def find_duplicate_groups(pages: list[PageAnalysisResult]) -> list[DuplicateGroup]:
    groups: list[DuplicateGroup] = []
    groups.extend(_exact_duplicates(pages, "title", lambda p: [p.title]))
    groups.extend(_exact_duplicates(pages, "description", lambda p: [p.meta_description]))
    groups.extend(_exact_duplicates(pages, "h1", lambda p: [h.text for h in p.headings_at(1)]))
    groups.extend(_exact_duplicates(pages, "paragraph", _candidate_paragraphs))
    groups.extend(_near_duplicates(pages))
    return groups


# =============================================================================
# Keyword stuffing
# =============================================================================


def find_keyword_issues(pages: list[PageAnalysisResult]) -> list[KeywordIssue]:
    issues: dict[str, KeywordIssue] = {}
    for page in pages:
        for kw in page.keyword_density:
            if kw.density < STUFFING_HIGH:
                continue
            level = Priority.CRITICAL if kw.density > STUFFING_CRITICAL else Priority.HIGH
            existing = issues.get(kw.keyword)
            if existing is None:
                issues[kw.keyword] = KeywordIssue(
                    keyword=kw.keyword,
                    density=kw.density,
                    occurrences=kw.count,
                    impact_level=level,
                    affected_pages=[page.url],
                )
                continue
            existing.occurrences += kw.count
            existing.affected_pages.append(page.url)
            if kw.density > existing.density:
                existing.density = kw.density
                existing.impact_level = level

    return sorted(issues.values(), key=lambda i: i.density, reverse=True)


def _keyword_health(issues: list[KeywordIssue]) -> int:
    critical = sum(1 for i in issues if i.impact_level == Priority.CRITICAL)
    high = sum(1 for i in issues if i.impact_level == Priority.HIGH)
    return max(0, 100 - 15 * critical - 8 * high)


# =============================================================================
# Recommendations and entry point
# =============================================================================


def _recommendations(
    pages: list[PageAnalysisResult],
    groups: list[DuplicateGroup],
    keyword_issues: list[KeywordIssue],
    needs_improvement: list[PageQuality],
) -> list[Recommendation]:
    recs: list[Recommendation] = []

    if groups:
        recs.append(
            Recommendation(
                category="content",
                priority=Priority.CRITICAL if len(groups) > 5 else Priority.HIGH,
                title="Fix Duplicate Content Issues",
                description=f"{len(groups)} instances of duplicate content detected",
                action_items=[
                    "Rewrite duplicate titles, descriptions and headings to be unique",
                ],
                impact=8,
                affected_pages=sorted({url for g in groups for url in g.urls}),
            )
        )

    if keyword_issues:
        critical = any(i.impact_level == Priority.CRITICAL for i in keyword_issues)
        recs.append(
            Recommendation(
                category="keywords",
                priority=Priority.CRITICAL if critical else Priority.HIGH,
                title="Reduce Keyword Over-Optimization",
                description=f"{len(keyword_issues)} keywords are over-optimized",
                action_items=["Use natural language and keyword variations instead of repetition"],
                impact=7,
                affected_pages=sorted({url for i in keyword_issues for url in i.affected_pages}),
            )
        )

    if needs_improvement:
        recs.append(
            Recommendation(
                category="quality",
                priority=Priority.MEDIUM,
                title="Improve Low-Quality Content",
                description=f"{len(needs_improvement)} pages need content quality improvements",
                action_items=["Focus on user value, clarity and comprehensive information"],
                impact=6,
                affected_pages=[p.url for p in needs_improvement],
            )
        )

    thin = [p.url for p in pages if p.word_count < 300]
    if thin:
        recs.append(
            Recommendation(
                category="content",
                priority=Priority.MEDIUM,
                title="Expand Thin Content",
                description=f"{len(thin)} pages have fewer than 300 words",
                action_items=["Add detail, examples and answers to common questions"],
                impact=5,
                affected_pages=thin,
            )
        )

    no_structure = [p.url for p in pages if not p.headings_at(2)]
    if no_structure:
        recs.append(
            Recommendation(
                category="structure",
                priority=Priority.LOW,
                title="Add Subheadings",
                description=f"{len(no_structure)} pages have no H2 subheadings",
                action_items=["Break long content into sections with descriptive H2 headings"],
                impact=4,
                affected_pages=no_structure,
            )
        )

    return recs[:MAX_RECOMMENDATIONS]


def analyze_content_quality(pages: list[PageAnalysisResult]) -> ContentQualityAnalysis:
    """
    Analyze duplication, keyword stuffing and content quality across pages.

    Args:
        pages: Analyzed pages

    Returns:
        ContentQualityAnalysis with a combined 0-100 score
    """
    groups = find_duplicate_groups(pages)
    uniqueness = max(30, 100 - 10 * len(groups))

    keyword_issues = find_keyword_issues(pages)
    keyword_health = _keyword_health(keyword_issues)

    page_quality = [
        PageQuality(url=p.url, readability=p.readability_score, depth=p.content_depth)
        for p in pages
    ]
    quality = (
        round(sum(q.overall for q in page_quality) / len(page_quality)) if page_quality else 0
    )

    combined = round(
        uniqueness * CONTENT_WEIGHTS["uniqueness"]
        + keyword_health * CONTENT_WEIGHTS["keywords"]
        + quality * CONTENT_WEIGHTS["quality"]
    )

    ranked = sorted(page_quality, key=lambda q: q.overall, reverse=True)
    top = [q for q in ranked if q.overall >= TOP_PERFORMER_SCORE][:3]
    weak = [q for q in reversed(ranked) if q.overall < NEEDS_IMPROVEMENT_SCORE][:5]

    logger.debug(
        "content_quality_analyzed",
        pages=len(pages),
        duplicate_groups=len(groups),
        keyword_issues=len(keyword_issues),
        score=combined,
    )

    return ContentQualityAnalysis(
        duplicate_groups=groups,
        uniqueness_score=uniqueness,
        keyword_issues=keyword_issues,
        keyword_health_score=keyword_health,
        quality_score=quality,
        combined_score=combined,
        top_performers=top,
        needs_improvement=weak,
        recommendations=_recommendations(pages, groups, keyword_issues, weak),
        pages_analyzed=len(pages),
    )
