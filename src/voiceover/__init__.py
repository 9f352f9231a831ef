"""ElevenLabs speech backend with LLM-based script chunking."""
