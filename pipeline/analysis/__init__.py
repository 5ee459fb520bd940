"""Pure analyzers: per-page metrics and issues plus cross-page scoring."""

# Lazy imports - use explicit imports when needed:
# from pipeline.analysis.metrics import readability_score, keyword_density, content_depth
# from pipeline.analysis.issues import detect_seo_issues
# from pipeline.analysis.technical import analyze_technical_seo, TechnicalSeoAnalysis
# from pipeline.analysis.content_quality import analyze_content_quality, ContentQualityAnalysis
# from pipeline.analysis.link_architecture import analyze_link_architecture
# from pipeline.analysis.performance import analyze_performance, PerformanceAnalysis
# from pipeline.analysis.aggregate import calculate_aggregate_metrics, seo_effectiveness_score
# from pipeline.analysis.competitor import compare_analyses, CompetitorComparison

__all__ = [
    "readability_score",
    "keyword_density",
    "content_depth",
    "detect_seo_issues",
    "analyze_technical_seo",
    "TechnicalSeoAnalysis",
    "analyze_content_quality",
    "ContentQualityAnalysis",
    "analyze_link_architecture",
    "LinkArchitectureAnalysis",
    "analyze_performance",
    "PerformanceAnalysis",
    "calculate_aggregate_metrics",
    "seo_effectiveness_score",
    "compare_analyses",
    "CompetitorComparison",
]
