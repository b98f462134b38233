"""Hosted-model access: provider adapters, prompts, response normalization and the request gateway."""
