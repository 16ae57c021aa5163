from surfaced.analyzers.robots_txt import analyze_robots_txt, check_bot_access, is_bot_allowed
from surfaced.generators.robots_txt import DEFAULT_AI_BOTS, generate_robots_txt


def test_generated_robots_txt_is_ai_friendly():
    content = generate_robots_txt("cool-socks.com")

    result = analyze_robots_txt(content)

    assert result["is_ai_friendly"] is True
    assert result["blocked_ai_bots"] == []
    assert result["score"] == 100


def test_generated_robots_txt_layout():
    content = generate_robots_txt("cool-socks.com", {"crawl_delay": 2, "custom_rules": "Disallow: /tmp"})
    lines = content.splitlines()

    assert lines[0] == "# robots.txt for cool-socks.com"
    assert "User-agent: *" in lines
    assert "Allow: /" in lines
    assert "Disallow: /checkout" in lines
    assert "Crawl-delay: 2" in lines
    assert "# Custom Rules" in lines
    assert "Sitemap: https://cool-socks.com/sitemap.xml" in lines
    assert lines[-1] == "# https://cool-socks.com/llms.txt"
    for bot in DEFAULT_AI_BOTS:
        assert f"User-agent: {bot}" in lines


def test_ai_section_omitted_when_ai_bots_disabled():
    content = generate_robots_txt("cool-socks.com", {"allow_ai_bots": False, "sitemap_url": "https://cdn.test/s.xml"})

    assert "# AI Crawlers" not in content
    assert "User-agent: GPTBot" not in content
    assert "Sitemap: https://cdn.test/s.xml" in content
    assert "Crawl-delay" not in content


def test_blocked_ai_bots_are_penalized():
    content = "User-agent: GPTBot\nDisallow: /\n\nUser-agent: CCBot\nDisallow: /\n\nSitemap: https://x.test/sitemap.xml\n"

    result = analyze_robots_txt(content)

    assert result["blocked_ai_bots"] == ["GPTBot", "CCBot"]
    assert result["is_ai_friendly"] is False
    # 2 blocked bots and no llms.txt reference
    assert result["score"] == 100 - 30 - 5


def test_wildcard_disallow_is_restrictive():
    result = analyze_robots_txt("User-agent: *\nDisallow: /\n")

    assert result["is_ai_friendly"] is False
    assert "Overly restrictive: 'Disallow: /' blocks all crawlers" in result["issues"]
    assert "No sitemap specified" in result["issues"]
    assert result["score"] == 100 - 30 - 10 - 5


def test_empty_robots_txt_allows_every_bot():
    assert is_bot_allowed("", "GPTBot") is True
    assert all(check_bot_access(None).values())


def test_specific_group_overrides_wildcard_order():
    content = "User-agent: *\nDisallow: /\n\nUser-agent: GPTBot\nAllow: /\n"

    assert is_bot_allowed(content, "GPTBot") is True
    assert is_bot_allowed(content, "ClaudeBot") is False
    access = check_bot_access(content)
    assert access["gpt_bot_allowed"] is True
    assert access["claude_bot_allowed"] is False
