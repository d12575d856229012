"""GitSplits - conversational payout agent for open source contributors."""
