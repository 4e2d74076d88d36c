from rivalgraph.domain.ontology import INDUSTRY_KEYWORDS
from rivalgraph.graph.entity_resolution import Entity


def infer_industries(
    public_companies: dict[str, Entity],
    keywords: dict[str, list[str]] = INDUSTRY_KEYWORDS,
) -> dict[str, list[str]]:
    """Tag each public company (by slug) with every industry whose keywords appear in its context."""
    tagged: dict[str, list[str]] = {}
    for company in public_companies.values():
        text = " ".join(
            (company.years[year].get("context") or "").lower()
            for year in sorted(company.years)
        )
        industries = [
            industry for industry, words in keywords.items()
            if any(word in text for word in words)
        ]
        if industries:
            tagged[company.slug] = industries
    return tagged
