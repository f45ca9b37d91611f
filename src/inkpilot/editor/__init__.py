"""Document surface protocol, headless document and selection tracking."""
