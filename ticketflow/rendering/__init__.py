"""Template rendering for changelogs and pull requests."""
