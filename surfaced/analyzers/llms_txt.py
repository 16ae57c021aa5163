"""llms.txt parsing."""

from typing import Dict, Optional


def parse_llms_txt(content: Optional[str]) -> Dict:
    """Extract the name, description, contact and sitemap from an llms.txt.

    A file is valid when it declares at least a name or a description.

    >>> parse_llms_txt("# Acme\\n> Outdoor gear")["is_valid"]
    True
    """
    if content is None:
        return {"exists": False, "sections": {}, "is_valid": False}

    sections: Dict[str, str] = {}
    for line in content.splitlines():
        stripped = line.strip()
        lowered = stripped.lower()
        if stripped.startswith("# "):
            sections.setdefault("name", stripped[2:].strip())
        elif stripped.startswith("> "):
            sections.setdefault("description", stripped[2:].strip())
        elif "contact:" in lowered:
            sections["contact"] = stripped.split(":", 1)[1].strip()
        elif "sitemap:" in lowered:
            sections["sitemap"] = stripped.split(":", 1)[1].strip()

    return {
        "exists": True,
        "content": content[:2000],
        "sections": sections,
        "is_valid": bool(sections.get("name") or sections.get("description")),
    }
