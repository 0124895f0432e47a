"""
LLM Abstraction Layer: provider contract, adapters and registry.

Modules:
- base: ModelProvider ABC and the ChatRequest/ChatResult types
- providers: Anthropic, OpenAI, Gemini and Ollama adapters
- registry: name -> provider factory, ProviderName enum
- llm_config: default models per provider, model presets
- json_extract: pulls one JSON object out of a model reply
"""
