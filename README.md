# tplparse

`tplparse` contains the building blocks for parsing templates that use a
Jinja-like syntax:

- `tplparse.scanner` has low-level scanners for identifiers, keywords and
  literals. It also has the delimiter settings (`Syntax`), the nesting-depth
  guard (`Level`) and the shared parse state (`State`).
- `tplparse.expr` has the expression syntax tree and a recursive-descent
  expression parser.
- `tplparse.targets` has binding targets and their parser. Targets are the
  left-hand side of `let`, `for`, `if let` and `match` arms.
- `tplparse.nodes` has the template node types. These cover literal text,
  comments, expressions, and the `if`, `for`, `match`, `let`, `call`,
  `macro`, `block`, `extends`, `include`, `import`, `raw` and `filter`
  blocks. The module also has the whitespace-control markers.

The package has no runtime dependencies.

## Calling convention

Every parsing function takes the source `text` and a start position and
returns a pair `(new_position, value)`.

- A mismatch raises `tplparse.scanner.Backtrack`. The caller may then try
  another alternative.
- Malformed input inside a construct that has already been committed to
  raises `tplparse.scanner.Failure`.

Both exceptions carry `.pos`, the position in `text`, and an optional
`.message`.

## Expressions

```python
from tplparse.expr import BinOp, Filter, Var, parse_expr
from tplparse.scanner import Level

end, expr = parse_expr("strvar|e", 0, Level())
assert end == 8
assert expr == Filter("e", (Var("strvar"),))

end, expr = parse_expr("a + b", 0, Level())
assert expr == BinOp("+", Var("a"), Var("b"))
```

A filter is written `value|name` or `value|name(args)`. The filtered value
becomes the first argument. A `|` with whitespace before it is parsed as the
bitwise-or operator.

Operator precedence, from loosest to tightest binding:

- ranges (`..`, `..=`)
- `||`
- `&&`
- comparisons
- `|`
- `^`
- `&`
- shifts
- `+` / `-`
- `*` / `/` / `%`
- filters
- unary `!` / `-`
- suffixes: attribute access, indexing, calls, `?`, and `name!(...)` macro
  calls

`parse_arguments(text, pos, level, is_template_macro)` parses a parenthesised
argument list. Named arguments are accepted only when `is_template_macro` is
true. They must come last and may not repeat.

`parse_filter(text, pos, level)` parses a single `|name(...)` suffix.

## Targets

```python
from tplparse.scanner import State
from tplparse.targets import NameTarget, TupleTarget, parse_target

end, target = parse_target("(a, b)", 0, State())
assert target == TupleTarget((), (NameTarget("a"), NameTarget("b")))
```

Targets cover the following forms:

- names
- tuples
- tuple-like structs: `Some(x)` and `path::Struct with (x)`
- named structs: `Point { x, y: z }`
- literals
- paths
- `or` chains

The names `self` and `writer` are rejected with a `Failure`.

## Nodes

```python
from tplparse.nodes import Lit, Whitespace

assert Lit.split_ws_parts("\ta") == Lit("\t", "a", "")
assert Whitespace.parse("-", 0) == (1, Whitespace.SUPPRESS)
```

`Ws(left, right)` records the whitespace markers on each side of a tag.

## Limits

Nesting depth is capped at `Level.MAX_DEPTH` (128). Deeper input raises
`Failure` before it can exhaust the interpreter stack.

## What this package does not do

There is no function that parses a complete template source into a list of
nodes. The node types in `tplparse.nodes` describe such a tree, but nothing in
the package builds it from text.

`tplparse.scanner.ParseError` and `strip_common` are provided for reporting
errors with a file location, but no parser in the package raises
`ParseError`.

The package does not render templates.

## Running the tests

```
pip install -e .[test]
pytest
```