"""HTTP API for public listing pages and the admin panel."""
