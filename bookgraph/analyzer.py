# -*- coding: utf-8 -*-
"""Tags, categories and domains derived from a bookmark's title and URL."""
import re
from typing import List, Optional, Set, Tuple
from urllib.parse import urlsplit

STOPWORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "is", "it", "this", "that", "are", "was",
    "be", "has", "had", "have", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "can", "not", "no", "so", "if",
    "my", "your", "his", "her", "its", "our", "their", "me", "him",
    "us", "them", "who", "what", "which", "when", "where", "how", "all",
    "each", "every", "both", "few", "more", "most", "other", "some",
    "such", "than", "too", "very", "just", "about", "up", "out", "new",
    "home", "page", "site", "web", "www", "http", "https", "com", "org",
    "net", "io", "html", "index", "default", "welcome",
}

MIN_TAG_LENGTH = 3

# Order matters: the first category with a matching keyword wins.
CATEGORY_RULES: List[Tuple[str, List[str]]] = [
    ("Development", [
        "github", "gitlab", "stackoverflow", "rust", "python", "javascript",
        "typescript", "golang", "java", "code", "programming", "developer", "api",
        "docker", "kubernetes", "npm", "crates", "pypi", "docs.rs", "dev.to",
        "compiler", "debug", "framework", "library", "sdk", "cli", "terminal",
    ]),
    ("AI & ML", [
        "openai", "chatgpt", "huggingface", "tensorflow", "pytorch",
        "machine-learning", "deep-learning", "llm", "gpt", "claude", "gemini",
        "artificial-intelligence", "neural", "model", "training", "dataset",
        "watsonx", "granite", "copilot",
    ]),
    ("Cloud & DevOps", [
        "aws", "azure", "gcloud", "cloud", "ibm.com", "heroku",
        "vercel", "netlify", "terraform", "ansible", "jenkins", "ci/cd",
        "devops", "infrastructure", "deploy", "container", "serverless",
    ]),
    ("News & Media", [
        "news", "bbc", "cnn", "reuters", "nytimes", "medium",
        "blog", "article", "press", "journal", "magazine", "podcast",
    ]),
    ("Social", [
        "twitter", "facebook", "linkedin", "reddit", "instagram",
        "youtube", "tiktok", "discord", "slack", "mastodon", "threads",
    ]),
    ("Shopping", [
        "amazon", "ebay", "shop", "store", "buy", "price",
        "product", "cart", "checkout", "deal", "sale",
    ]),
    ("Finance", [
        "bank", "finance", "invest", "stock", "crypto", "bitcoin",
        "trading", "portfolio", "payment", "paypal", "stripe",
    ]),
    ("Education", [
        "learn", "course", "tutorial", "university", "edu",
        "academy", "school", "lecture", "study", "research", "paper",
        "arxiv", "scholar", "coursera", "udemy",
    ]),
    ("Design", [
        "figma", "dribbble", "behance", "design", "ui", "ux",
        "css", "tailwind", "font", "icon", "color", "layout", "sketch",
    ]),
    ("Reference", [
        "wikipedia", "docs", "documentation", "reference",
        "manual", "guide", "spec", "standard", "rfc", "mdn",
    ]),
]

DEFAULT_CATEGORY = "Other"

_WORD_RE = re.compile(r"[^\W_]+")


def _keep(token: str) -> bool:
    return len(token) >= MIN_TAG_LENGTH and token not in STOPWORDS


def extract_tags(title: str, url: Optional[str] = None) -> Set[str]:
    tags = {w for w in _WORD_RE.findall((title or "").lower()) if _keep(w)}
    if url:
        try:
            parsed = urlsplit(url)
        except ValueError:
            parsed = None
        path = parsed.path if parsed and parsed.scheme and parsed.netloc else ""
        for segment in path.split("/"):
            clean = segment.lower().rsplit(".", 1)[0]
            if _keep(clean):
                tags.add(clean)
    return tags


def categorize(title: str, url: Optional[str] = None, domain: Optional[str] = None) -> str:
    text = f"{(title or '').lower()} {(url or '').lower()}"
    domain_lower = (domain or "").lower()
    for category, keywords in CATEGORY_RULES:
        for keyword in keywords:
            if keyword in text or keyword in domain_lower:
                return category
    return DEFAULT_CATEGORY


def extract_domain(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        parsed = urlsplit(url)
        host = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not host:
        return None
    if host.startswith("www."):
        host = host[4:]
    return host or None


def jaccard_similarity(tags_a: Set[str], tags_b: Set[str]) -> float:
    """Tag-set overlap; an empty side shares nothing, so the score is 0."""
    if not tags_a or not tags_b:
        return 0.0
    return len(tags_a & tags_b) / len(tags_a | tags_b)
