"""Editor, toolbar and assistant UI layers."""
