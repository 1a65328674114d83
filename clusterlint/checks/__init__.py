"""Check registry, check runner and the built-in checks."""