"""
Core Package.

Contains the parsing and rewriting machinery:
- Parser and the `PythonAst` syntax model
- Query index and value records
- Refactor engine, node splices and change log
- Code generator, formatter adapter and transform registry
"""
