"""ReportForge test suite."""
