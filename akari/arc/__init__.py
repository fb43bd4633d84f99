"""ARC portal analytics: mindshare, arena scoring, signal scores and reports."""
