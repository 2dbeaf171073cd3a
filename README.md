# bookforge

bookforge reads the configuration of a markdown book (`book.toml`) and
provides the preprocessors that rewrite a book's chapters before rendering.

## Installation

```
pip install bookforge
```

To run the test suite, install the test extra and run pytest:

```
pip install "bookforge[test]"
pytest
```

## Configuration

`bookforge.config.Config` holds three fixed sections, `book` (`BookConfig`),
`build` (`BuildConfig`) and `rust` (`RustConfig`). Any other tables stay as
plain TOML values, which you reach by dotted key.

```python
from bookforge.config import Config

cfg = Config.from_str("""
[book]
title = "My Book"
authors = ["Jane Doe"]

[build]
build-dir = "out"

[other-table.foo]
bar = 123
""")

cfg.get("other-table.foo.bar")           # 123
cfg.book.title                            # 'My Book'
cfg.build.build_dir                       # Path('out')

cfg.set("output.html.theme", "./themes")
cfg.html_config().theme                   # Path('themes')
```

- `Config.from_disk(path)` loads a file. `Config.from_value(table)` builds a
  configuration from an already parsed table.
- `Config.to_value()` returns the configuration as a table with sorted keys.
  `Config.to_toml()` returns it as TOML text. `book` is always written.
  `build` and `rust` are written only when they differ from their defaults.
- `Config.set(key, value)` replaces whatever lies along the dotted path.
  - Keys that begin with `book.` or `build.` update those sections.
  - A value that such a section cannot hold is ignored without an error.
- `get_renderer(name)` returns the `[output.<name>]` table, or `None`.
- `get_preprocessor(name)` returns the `[preprocessor.<name>]` table, or `None`.
- `html_config()` returns the `[output.html]` settings as an `HtmlConfig`. It
  returns `None` when the table is absent. When the table is invalid, it logs
  an error and returns `None`.
- Text that is not valid TOML, or a section with values of the wrong type,
  raises `ConfigError`. The same applies to a file that cannot be opened or
  decoded.

The older layout is still accepted, with a logged warning. In that layout
`title`, `authors`, `source` and `description` sit at the top level and the
build directory is given as `destination` under `[output.html]`.

`RustConfig.edition` is a `RustEdition` (`E2015` or `E2018`). Any other
edition string is rejected.

### Overrides from the environment

`Config.update_from_env(environ=None)` applies every `MDBOOK_*` variable, read
from `os.environ` unless a mapping is given. To build the key, it:

- removes the prefix,
- lower-cases the rest,
- turns `__` into `.` to separate nested keys,
- turns `_` into `-`.

| Variable               | Key           |
|------------------------|---------------|
| `MDBOOK_BOOK__TITLE`   | `book.title`  |
| `MDBOOK_FOO__BAR`      | `foo.bar`     |
| `MDBOOK_FOO_BAR__BAZ`  | `foo-bar.baz` |

Values are parsed as JSON where possible and are kept as strings otherwise. A
JSON object given for `MDBOOK_BOOK` or `MDBOOK_BUILD` sets each of its entries
in that section, and the update stops there.

`parse_env(name)` performs the name translation on its own. It returns `None`
for names without the prefix.

### HTML output settings

`bookforge.html_config.HtmlConfig` mirrors the `[output.html]` table. It holds
the nested `Fold`, `Playground`, `Print` and `Search` settings.

- Keys are kebab-case, and keys that are left out take their defaults.
- `playpen` is accepted as another name for `playground`.
- A `[print]` table must give every key it has.
- Each class has `from_value(table)` and `to_value()`.
- `HtmlConfig.theme_dir(root)` returns the configured theme directory under
  `root`, or `root / "theme"` when none is set.

## Preprocessors

Preprocessors subclass `bookforge.preprocess.context.Preprocessor`. They
implement `name()` and `run(ctx, book)`, and may override
`supports_renderer(renderer)`, which returns `True` by default.

They receive a `PreprocessorContext` holding:

- `root`, the book root,
- `config`, its `Config`,
- `renderer`, the renderer name,
- `mdbook_version`,
- `chapter_titles`, a dictionary of title overrides that is never serialized.

The book passed to `run` must offer `for_each_mut(callback)`. Chapters are the
items that have a `path` attribute, along with `name` and `content`.

### `LinkPreprocessor`

`bookforge.preprocess.links.LinkPreprocessor` expands these helpers in every
chapter:

| Helper | Effect |
|--------|--------|
| `{{#include file}}` | Includes the whole file. |
| `{{#include file:5}}` | Includes a single line (line numbers start at 1). |
| `{{#include file:5:10}}`, `file:5:`, `file::10` | Includes a range of lines. |
| `{{#include file:anchor}}` | Includes the lines between `ANCHOR: anchor` and `ANCHOR_END: anchor`. |
| `{{#rustdoc_include ...}}` | Works like `include`, but keeps the lines it was not asked for, prefixed with `# `. |
| `{{#playground file attrs...}}` | Wraps the file in a fenced `rust` code block with the given attributes. `{{#playpen ...}}` is accepted with a warning. |
| `{{#title New Title}}` | Replaces the chapter title. The new title is recorded in `ctx.chapter_titles`. |
| `\{{#...}}` | A leading backslash leaves the helper in the text, without the backslash. |

Included files are expanded in turn, up to ten levels deep. A helper whose file
cannot be read is logged and left in the text as written.

The module also offers two lower-level functions:

- `replace_all(text, base_dir, source, depth, title)` returns the expanded text
  together with the chapter title.
- `render_link(link, base_dir)` renders a single helper.

`bookforge.preprocess.link_parse` finds and parses helpers without reading any
files:

```python
from bookforge.preprocess.link_parse import find_links, parse_include_path

for link in find_links("See {{#include code.rs:2:4}} here"):
    print(link.kind, link.path, link.range_or_anchor, link.start_index, link.end_index)
# LinkKind.INCLUDE code.rs LineRange(start=1, end=4) 4 28

parse_include_path("file.rs:anchor")      # (Path('file.rs'), Anchor(name='anchor'))
```

### `IndexPreprocessor`

`bookforge.preprocess.index.IndexPreprocessor` renames chapters whose file stem
is `readme`, in any case, to `index.md`. It logs a warning when an `index.md`
already exists next to the `README`.

`is_readme_file(path)` performs the stem check on its own.

### `CmdPreprocessor`

`bookforge.preprocess.command.CmdPreprocessor(name, cmd)` runs an external
program, splitting the command string the way a shell would.

- `supports_renderer(renderer)` runs `<cmd> supports <renderer>`. Exit status 0
  means the renderer is supported.
- `run(ctx, book)` writes `[context, book]` as JSON to the program's standard
  input and reads the processed book as JSON from its standard output. The
  program's standard error is passed through to the user.
  - If the book has a `to_value()` method, it is used to serialize the book.
  - If the book's class has `from_value()`, it is used to rebuild the result.
    Otherwise the plain JSON value is returned.
- `run` raises `PreprocessorError` when:
  - the command is empty,
  - the program cannot be started,
  - the program exits with a non-zero status,
  - its output is not valid JSON.
- `CmdPreprocessor.parse_input(reader)` is for a program acting as a
  preprocessor. It parses what arrives on its standard input into a context and
  a book.

## What the package does not do

bookforge works only on configurations and on books that you build and pass in
yourself. It does not:

- read `SUMMARY.md`,
- load chapters from disk,
- run a build,
- render HTML or other output,
- serve or watch a book,
- provide a command-line tool.