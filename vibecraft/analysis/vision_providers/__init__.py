"""
Vision LLM providers. Imported lazily by VisionLLMAnalyzer.
"""
