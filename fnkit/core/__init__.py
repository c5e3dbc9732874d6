"""Build pipeline and invocation dispatcher."""
