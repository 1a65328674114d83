"""Kubernetes client, client options, namespace filtering and object fetching."""