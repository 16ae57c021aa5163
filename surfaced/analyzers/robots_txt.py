"""robots.txt parsing and AI-crawler friendliness scoring."""

from typing import Dict, Iterable, List, Optional, Tuple

# Crawlers that feed AI assistants, as opposed to classic search engines
AI_CRAWLERS = [
    "GPTBot",
    "ChatGPT-User",
    "ClaudeBot",
    "anthropic-ai",
    "PerplexityBot",
    "Google-Extended",
    "CCBot",
]

BLOCKED_BOT_PENALTY = 15
RESTRICTIVE_PENALTY = 30
NO_SITEMAP_PENALTY = 10
NO_LLMS_TXT_PENALTY = 5


def parse_groups(content: str) -> List[Tuple[List[str], List[Tuple[str, str]]]]:
    """Split robots.txt into (user-agents, rules) groups.

    Consecutive User-agent lines share one group. Everything is lowercased
    and comments are dropped.
    """
    groups: List[Tuple[List[str], List[Tuple[str, str]]]] = []
    agents: List[str] = []
    rules: List[Tuple[str, str]] = []

    for raw in (content or "").splitlines():
        line = raw.split("#", 1)[0].strip().lower()
        if ":" not in line:
            continue
        directive, value = (part.strip() for part in line.split(":", 1))

        if directive == "user-agent":
            if rules:
                groups.append((agents, rules))
                agents, rules = [], []
            agents.append(value)
        elif directive in ("allow", "disallow") and agents:
            rules.append((directive, value))

    if agents:
        groups.append((agents, rules))
    return groups


def _root_access(groups, agent_names: Iterable[str]) -> Optional[bool]:
    """Walk groups in order; the last root rule for any of agent_names wins."""
    names = {name.lower() for name in agent_names}
    allowed: Optional[bool] = None
    for agents, rules in groups:
        if not names.intersection(agents):
            continue
        for directive, path in rules:
            if path == "/":
                allowed = directive == "allow"
    return allowed


def is_bot_allowed(content: Optional[str], bot: str) -> bool:
    """Whether a bot may crawl the site root, honouring the wildcard group.

    Missing robots.txt means everything is allowed.
    """
    if not content:
        return True
    access = _root_access(parse_groups(content), ["*", bot])
    return access is not False


def check_bot_access(content: Optional[str]) -> Dict[str, bool]:
    """Root access for the crawlers the website analyzer reports on."""
    return {
        "gpt_bot_allowed": is_bot_allowed(content, "GPTBot"),
        "claude_bot_allowed": is_bot_allowed(content, "ClaudeBot")
        and is_bot_allowed(content, "anthropic-ai"),
        "perplexity_bot_allowed": is_bot_allowed(content, "PerplexityBot"),
        "google_bot_allowed": is_bot_allowed(content, "Googlebot"),
        "bing_bot_allowed": is_bot_allowed(content, "Bingbot"),
    }


def analyze_robots_txt(content: str) -> Dict:
    """Score a robots.txt for AI crawler friendliness.

    Args:
        content: robots.txt body (may be empty)

    Returns:
        Dictionary with is_ai_friendly, blocked_ai_bots, issues, suggestions and score
    """
    groups = parse_groups(content)
    lowered = (content or "").lower()
    issues: List[str] = []
    suggestions: List[str] = []
    score = 100

    blocked = [bot for bot in AI_CRAWLERS if _root_access(groups, [bot]) is False]
    if blocked:
        issues.append(f"AI crawlers blocked: {', '.join(blocked)}")
        suggestions.append(
            "Allow AI crawlers such as GPTBot, ClaudeBot and PerplexityBot so AI assistants can read your products"
        )
        score -= BLOCKED_BOT_PENALTY * len(blocked)

    restrictive = _root_access(groups, ["*"]) is False
    if restrictive:
        issues.append("Overly restrictive: 'Disallow: /' blocks all crawlers")
        score -= RESTRICTIVE_PENALTY

    has_sitemap = any(
        line.strip().lower().startswith("sitemap:") for line in (content or "").splitlines()
    )
    if not has_sitemap:
        issues.append("No sitemap specified")
        suggestions.append("Add a Sitemap: line pointing to your sitemap.xml")
        score -= NO_SITEMAP_PENALTY

    if "llms.txt" not in lowered:
        suggestions.append("Reference your llms.txt file so AI crawlers can find a summary of your store")
        score -= NO_LLMS_TXT_PENALTY

    return {
        "is_ai_friendly": not blocked and not restrictive,
        "blocked_ai_bots": blocked,
        "issues": issues,
        "suggestions": suggestions,
        "score": max(0, min(100, score)),
    }
