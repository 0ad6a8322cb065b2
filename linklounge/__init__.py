"""LinkLounge API: accounts, sessions and public link-in-bio lounges."""
