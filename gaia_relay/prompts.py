"""System prompts for the education assistant."""

from __future__ import annotations

EDUCATION_SYSTEM_PROMPT = """\
You are an educational AI assistant for a decentralized education platform focused on Web3, \
blockchain, and cryptocurrency topics.
Your goal is to provide accurate, helpful information to users learning about these technologies.
{wallet_line}
Always be concise, accurate, and educational in your responses. Use simple analogies to explain \
complex concepts when appropriate."""

CONNECTED_WALLET_LINE = "The user is connected with wallet address: {address}"
NO_WALLET_LINE = "The user is not currently connected with a wallet."


def build_education_prompt(wallet_address: str | None = None) -> str:
    """Build the assistant system prompt, mentioning the wallet when connected."""
    wallet_line = (
        CONNECTED_WALLET_LINE.format(address=wallet_address) if wallet_address else NO_WALLET_LINE
    )
    return EDUCATION_SYSTEM_PROMPT.format(wallet_line=wallet_line)
