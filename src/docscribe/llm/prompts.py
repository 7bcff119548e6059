"""Prompt construction for docstring generation.

The provider is asked for the docstring body only (no quotes, no code
fences), in Google style, so the writer can indent and quote it itself.
"""

from docscribe.models.symbols import ApiContext, SymbolType

SYSTEM_PROMPT = (
    "You are a senior Python engineer writing docstrings for a public API. "
    "Write Google-style docstrings: a one-line summary ending with a period, an optional "
    "short paragraph, then Args:, Returns: and Raises: sections where they apply. "
    "Describe only behavior that is visible in the provided code. "
    "Never invent parameters. "
    'Reply with the docstring body only, without triple quotes or markdown fences.'
)

MAX_CALL_SITES = 5


def build_docstring_prompt(context: ApiContext) -> str:
    """Build the user prompt for one symbol.

    Args:
        context: Collected evidence for the symbol

    Returns:
        Prompt text
    """
    kind = {
        SymbolType.CLASS: "class",
        SymbolType.FUNCTION: "function",
        SymbolType.METHOD: "method",
    }[context.symbol_type]

    parts = [f"Write the docstring for the {kind} `{context.qualified_name}`.", ""]
    parts.append(f"Signature:\n{context.signature}")

    if context.parameter_types:
        params = "\n".join(
            f"- {name}: {annotation or 'unannotated'}"
            for name, annotation in context.parameter_types.items()
        )
        parts.append(f"Parameters:\n{params}")

    if context.return_type:
        parts.append(f"Return annotation: {context.return_type}")

    if context.related_types:
        parts.append(f"Related types: {', '.join(context.related_types)}")

    if context.implementation_excerpt:
        parts.append(f"Implementation:\n{context.implementation_excerpt}")

    if context.call_sites:
        sites = "\n".join(context.call_sites[:MAX_CALL_SITES])
        parts.append(f"Example call sites:\n{sites}")

    if context.existing_docstring:
        parts.append(
            "The current docstring is incomplete or out of date; keep what is still "
            f"accurate:\n{context.existing_docstring}"
        )

    return "\n\n".join(parts)


def build_messages(context: ApiContext) -> list[dict[str, str]]:
    """Build chat messages for one symbol."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_docstring_prompt(context)},
    ]


def estimate_tokens(text: str) -> int:
    """Rough token estimate (four characters per token)."""
    return max(1, len(text) // 4)
