"""Install plan assembly, execution and release metadata."""
