"""KubePress: a Kubernetes operator converging WordPressSite objects."""
