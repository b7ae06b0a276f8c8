"""Media discovery stage: runs the discovery tool and links captures to their containing pages."""
