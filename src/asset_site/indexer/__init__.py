"""Directory listing pages and the root size audit."""
