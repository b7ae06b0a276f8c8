"""WARC output: metadata records for discovery output and the writer that runs record builders."""
