"""
Test Package Initialization

This package contains the unit tests for minichain.

Test Structure:
- test_config.py: Configuration tests
- test_logger.py: Logging setup tests
- test_models.py: Model identifier resolution tests
- test_completions.py: Completion payload and HTTP provider tests
- test_embeddings.py: Embedding provider and cache tests
- test_vectorstore.py: Vector store tests
- test_llm.py: OpenAIChat and LLMResult tests
- test_cli.py: Command line interface tests

Run tests with:
    pytest tests/ -v
    pytest tests/ -v --cov=minichain
"""
