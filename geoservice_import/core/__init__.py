"""Core utilities and shared infrastructure.

- config: Import configuration loading and validation
- constants: Named constants (buffer radius, match threshold, tag keys)
- exceptions: Structured exception taxonomy
"""
