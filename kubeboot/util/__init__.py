"""Helpers shared across kubeboot."""
