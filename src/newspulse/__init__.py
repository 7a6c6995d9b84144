"""newspulse: collect, deduplicate and verify news bulletins."""

__version__ = "1.0.0"
