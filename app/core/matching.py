"""Substring matchers shared by compatibility scoring and the integration graph.

All fuzzy matching lives here so it can be swapped for exact-key lookups
without touching the scoring or graph orchestration.
"""


def contains_ci(haystack: str | None, needle: str | None) -> bool:
    """Case-insensitive substring test. Empty or missing inputs never match."""
    if not haystack or not needle:
        return False
    return needle.lower() in haystack.lower()


def capability_matches(module_name: str, capability: str) -> bool:
    """True if a system module name covers a required capability."""
    return contains_ci(module_name, capability)


def references_provider(text: str | None, provider: str) -> bool:
    """True if an adapter id or integration name references a provider.

    Case-sensitive: provider keys are lowercase slugs and adapter ids embed them verbatim.
    """
    if not text or not provider:
        return False
    return provider in text


def workflow_targets_system(workflow_key: str, system_slug: str) -> bool:
    """True if a workflow key names a system (slug appears in the key)."""
    return contains_ci(workflow_key, system_slug)
