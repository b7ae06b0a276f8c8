"""Crawl-side collaborators: resource model, fetch stage and crawl log."""
