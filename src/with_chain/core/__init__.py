"""
Core Package.

Contains the rewriting pipeline:
- Lexer and fragment splitter
- Directive classifier
- Block emitter (the Chain Rewriter)
- Engine and LibCST source expander
"""
