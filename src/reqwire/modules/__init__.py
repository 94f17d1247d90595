"""reqwire building blocks: timeouts, transport, options, execution and disposition."""
