"""Security-related checks for pods and containers."""