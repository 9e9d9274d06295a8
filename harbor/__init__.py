"""Harbor: a spec-driven sidebar for browsing project databases."""
