"""HTTP middleware: request IDs, access logging, timeouts, rate limiting."""
