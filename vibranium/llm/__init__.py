"""Language-model access, context assembly, relevance gate and orchestrator."""
