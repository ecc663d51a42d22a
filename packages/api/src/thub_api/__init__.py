"""HTTP access to the THub REST API.

ApiClient owns the httpx session (cookies included, so the server's session
cookie rides along on every call) and maps HTTP failures onto the
thub_shared.errors taxonomy. The resources module adds typed fetchers for each
catalog endpoint.
"""
