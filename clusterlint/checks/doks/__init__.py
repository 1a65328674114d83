"""Checks for clusters managed by DigitalOcean Kubernetes."""