"""
Node Serialization for Query Records and Change Metadata.

Renders LibCST nodes to source text "in vacuum", i.e. without serializing
the whole module. Query records use it to materialize value text, and the
refactor engine uses it to capture the source of edited nodes for the
change log.
"""

from typing import Optional

import libcst as cst

# A dummy module used as a context to render detached nodes.
_RENDER_CTX = cst.parse_module("")


def capture_node_source(node: cst.CSTNode, module: Optional[cst.Module] = None) -> str:
  """
  Renders a LibCST node into its Python source code string representation.

  Args:
      node: The CST node to serialise.
      module: The module the node belongs to. Its indentation and newline
        defaults are used when given.

  Returns:
      str: The Python code string.
  """
  ctx = module if module is not None else _RENDER_CTX
  try:
    return ctx.code_for_node(node)
  except Exception:
    return f"<Unrepresentable Node: {type(node).__name__}>"

