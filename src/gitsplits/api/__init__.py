"""HTTP transport for the GitSplits agent."""
