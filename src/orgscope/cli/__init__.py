"""orgscope command line."""
