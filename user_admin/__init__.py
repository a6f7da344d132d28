"""Directory user admin panel backed by Microsoft Graph."""
