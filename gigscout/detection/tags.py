"""
gigscout/detection/tags.py

Tag detection over a prioritized keyword taxonomy.

Rules:
- A tag matches when any of its keywords is a substring of the lowercased
  title + description.
- Keywords wrapped in single spaces (" ghl ") are whole-word matches; the
  text is padded so they also match at the very start or end.
- Matches are sorted by priority (stable on declaration order), the generic
  "Website" tag is dropped when a more specific Project Type matched, and at
  most MAX_TAGS are returned.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from gigscout.core.text_processing import pad, scoring_text

MAX_TAGS = 2

PLATFORM = "Platform"
EXCLUDED_PLATFORM = "Excluded Platform"
TECHNOLOGY = "Technology"
PROJECT_TYPE = "Project Type"
SERVICE = "Service"
FEATURE = "Feature"
INDUSTRY = "Industry"

GENERIC_TAG = "Website"
GENERIC_TAG_CATEGORY = PROJECT_TYPE
# A Project Type tag above this priority makes the generic tag redundant.
SPECIFIC_PRIORITY_FLOOR = 70


@dataclass(frozen=True)
class TagDefinition:
    name: str
    category: str
    keywords: Tuple[str, ...]
    priority: int


def _tags(category: str, *rows: Tuple[str, Tuple[str, ...], int]) -> Tuple[TagDefinition, ...]:
    return tuple(TagDefinition(name=n, category=category, keywords=kw, priority=p) for n, kw, p in rows)


TAG_DEFINITIONS: Tuple[TagDefinition, ...] = (
    *_tags(
        PLATFORM,
        ("Webflow", ("webflow", "webflow site", "webflow website", "webflow development"), 100),
        ("Shopify", ("shopify", "shopify store", "shopify site", "shopify plus", "shopify development"), 90),
        ("WordPress", ("wordpress", " wp ", "wordpress site", "wordpress theme", "wordpress plugin"), 80),
        ("Wix", (" wix ", "wix site", "wix website"), 70),
        ("Squarespace", ("squarespace", "squarespace site"), 70),
        ("WooCommerce", ("woocommerce", "woo commerce"), 85),
        ("Framer", ("framer", "framer site", "framer website"), 75),
    ),
    *_tags(
        EXCLUDED_PLATFORM,
        ("Go High Level", ("go high level", "gohighlevel", "go highlevel", " ghl ", "ghl automation"), 200),
        ("Bubble.io", ("bubble.io", "bubble io", "bubble app", "bubble no-code"), 200),
    ),
    *_tags(
        TECHNOLOGY,
        ("React", ("react", "react.js", "reactjs", "react native", "next.js", "nextjs"), 95),
        ("Vue", ("vue", "vue.js", "vuejs", "nuxt"), 90),
        ("Node.js", (" node ", "node.js", "nodejs", "express.js"), 90),
        ("Python", ("python", "django", "flask", "fastapi"), 85),
        ("JavaScript", ("javascript", " js ", "typescript", " ts "), 80),
        ("API", (" api ", " apis ", "rest api", "restful api", "graphql", "api integration"), 88),
        ("Database", ("database", "postgresql", "postgres", "mysql", "mongodb", "firebase", "supabase"), 82),
        ("AWS", (" aws ", "amazon web services", " ec2 ", " s3 ", "aws lambda"), 78),
    ),
    *_tags(
        PROJECT_TYPE,
        ("Custom App", ("custom app", "web app", "web application", "saas", "platform", "custom platform"), 100),
        ("Portal", ("portal", "client portal", "dashboard", "admin panel", "user portal"), 95),
        ("E-commerce", ("ecommerce", "e-commerce", "online store", " shop ", "shopping cart"), 92),
        ("Website", ("website", " site ", "landing page", "web page"), 70),
        ("Redesign", ("redesign", "rebuild", "revamp", "refresh", "modernize"), 85),
        ("Migration", ("migration", "migrate", "move from", "convert from", "switch from"), 88),
        ("Marketplace", ("marketplace", "multi-vendor", "vendor platform"), 93),
        ("CRM", (" crm", "customer relationship", "sales pipeline"), 87),
        ("Booking System", ("booking", "reservation", "appointment", "scheduling"), 85),
    ),
    *_tags(
        SERVICE,
        ("CRO", (" cro ", "conversion rate optimization", "conversion optimization", "increase conversions"), 95),
        ("SEO", (" seo", "search engine optimization", "organic search", "google ranking"), 90),
        ("Performance", ("page speed", "performance", "optimization", "core web vitals", "loading speed"), 88),
        ("UI/UX", ("ui/ux", "user experience", "user interface", "ux design", "ui design"), 85),
        ("Automation", ("automation", "automate", "workflow automation", "zapier", "make.com"), 92),
        ("Integration", ("integration", "integrate", "third-party", "3rd party", "api integration"), 90),
        ("Analytics", ("analytics", "tracking", "google analytics", "data tracking", "metrics"), 80),
        ("Payment", ("payment", "stripe", "paypal", "checkout", "payment gateway"), 87),
    ),
    *_tags(
        FEATURE,
        ("Authentication", ("authentication", " auth ", "login", "sign up", "user accounts"), 85),
        ("CMS", (" cms", "content management", " blog", "dynamic content"), 82),
        ("Search", ("search functionality", "filters", "filtering", " search "), 78),
        ("Real-time", ("real-time", "realtime", "live updates", "websocket"), 90),
        ("Multi-language", ("multi-language", "multilingual", "internationalization", "i18n"), 80),
        ("Responsive", ("responsive", "mobile-friendly", "mobile responsive"), 75),
    ),
    *_tags(
        INDUSTRY,
        ("SaaS", ("saas", "software as a service", "saas startup", "saas platform"), 95),
        ("Fintech", ("fintech", "financial", "finance", "banking"), 92),
        ("Healthcare", ("healthcare", "health", "medical", "telemedicine"), 88),
        ("Real Estate", ("real estate", "property", "listings"), 85),
        ("Education", ("education", "e-learning", "online course", "edtech"), 85),
        ("Nonprofit", ("nonprofit", "non-profit", "charity", " ngo "), 80),
    ),
)

_BY_NAME: Dict[str, TagDefinition] = {t.name: t for t in TAG_DEFINITIONS}


def _keyword_hit(padded_text: str, keyword: str) -> bool:
    # Space-wrapped keywords keep their spaces: that is what makes them whole-word.
    return keyword.lower() in padded_text


def match_tags(text: str, definitions: Sequence[TagDefinition] = TAG_DEFINITIONS) -> List[TagDefinition]:
    """Every matching tag, ordered by priority descending (stable)."""
    padded = pad(text.lower())
    hits = [d for d in definitions if any(_keyword_hit(padded, kw) for kw in d.keywords)]
    return sorted(hits, key=lambda d: d.priority, reverse=True)


def drop_generic_website_tag(matched: Sequence[TagDefinition]) -> List[TagDefinition]:
    """
    Drop "Website" when another Project Type tag with priority above the
    floor also matched. Everything else passes through in order.
    """
    has_specific = any(
        d.category == GENERIC_TAG_CATEGORY and d.name != GENERIC_TAG and d.priority > SPECIFIC_PRIORITY_FLOOR
        for d in matched
    )
    if not has_specific:
        return list(matched)
    return [d for d in matched if d.name != GENERIC_TAG]


def detect_job_tags(title: str, description: str) -> List[str]:
    """At most MAX_TAGS tag names, highest priority first. Empty when nothing matches."""
    matched = match_tags(scoring_text(title, description))
    return [d.name for d in drop_generic_website_tag(matched)[:MAX_TAGS]]


def get_tags_by_category(tags: Sequence[str]) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for name in tags:
        definition = _BY_NAME.get(name)
        if definition is None:
            continue
        out.setdefault(definition.category, []).append(name)
    return out


def has_excluded_platform_tag(tags: Sequence[str]) -> bool:
    return any(_BY_NAME.get(t) is not None and _BY_NAME[t].category == EXCLUDED_PLATFORM for t in tags)


def all_tag_names() -> List[str]:
    """Unique tag names in declaration order (for UI filters)."""
    return list(_BY_NAME.keys())
