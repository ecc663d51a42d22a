"""Client-side query cache for the THub portal.

An injectable QueryCache that coalesces concurrent fetches per key, tracks
staleness, and publishes entry changes to subscribers; composable debounce and
memoize middleware over a uniform fetcher interface; and the query key
functions for every endpoint the portal reads.
"""
