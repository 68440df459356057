"""KubePress operator tests."""
