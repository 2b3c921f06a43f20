"""LibreLinkUp authentication and HTTP client."""
