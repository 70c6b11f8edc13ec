"""
Idea Intake - collect feature ideas from chat, dedupe and enrich them with an LLM.
"""

__version__ = "1.0.0"
