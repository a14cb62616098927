# jmt/services/__init__.py
