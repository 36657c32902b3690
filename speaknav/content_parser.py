"""Extracts text nodes from documents for the speaknav speech navigator."""

import os
import re
from html.parser import HTMLParser

from .models import BoundingBox, TextNode

BLOCK_TAGS = {
    "address", "article", "aside", "blockquote", "body", "caption", "dd", "div", "dl", "dt",
    "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5", "h6", "header", "li",
    "main", "nav", "ol", "p", "pre", "section", "table", "td", "th", "tr", "ul",
}
HIDDEN_TAGS = {"head", "script", "style", "template", "sup", "sub"}


class HTMLtoNodes(HTMLParser):
    """HTML parser producing one text node per run of text.

    Every node records the nearest enclosing block element as its container, so
    inline markup (spans, links, emphasis) stays within its paragraph.
    """

    def __init__(self):
        HTMLParser.__init__(self, convert_charrefs=True)
        self.nodes = []
        self.block_stack = [("", "root")]
        self.hiding_tags = []  # Stack to track which tags are causing hiding
        self.ispref = False
        self._block_count = 0
        self._run_counts = {}

    def handle_starttag(self, tag, attrs):
        if tag in HIDDEN_TAGS:
            self.hiding_tags.append(tag)
        elif tag in BLOCK_TAGS:
            self._block_count += 1
            element_id = dict(attrs).get("id")
            self.block_stack.append((tag, element_id or f"{tag}{self._block_count}"))
            if tag == "pre":
                self.ispref = True
        elif tag == "br":
            self._add_text(" ")

    def handle_startendtag(self, tag, attrs):
        if tag == "br":
            self._add_text(" ")

    def handle_endtag(self, tag):
        if tag in HIDDEN_TAGS:
            if self.hiding_tags and self.hiding_tags[-1] == tag:
                self.hiding_tags.pop()
        elif tag in BLOCK_TAGS:
            # Close the innermost matching block, tolerating unclosed children
            for depth in range(len(self.block_stack) - 1, 0, -1):
                if self.block_stack[depth][0] == tag:
                    del self.block_stack[depth:]
                    break
            if tag == "pre":
                self.ispref = False

    def handle_data(self, raw):
        if self.hiding_tags:
            return
        self._add_text(raw if self.ispref else re.sub(r"\s+", " ", raw))

    def _add_text(self, text):
        container = self.block_stack[-1][1]
        if not self.nodes or self.nodes[-1].container != container:
            # Leading whitespace of a block is layout, not content
            text = text.lstrip()
        if not text:
            return
        run = self._run_counts.get(container, 0)
        self._run_counts[container] = run + 1
        self.nodes.append(TextNode(key=f"{container}/{run}", text=text, container=container))


def parse_html(html: str) -> list[TextNode]:
    parser = HTMLtoNodes()
    parser.feed(html)
    parser.close()
    return parser.nodes


def parse_text(text: str) -> list[TextNode]:
    """Treats blank-line separated blocks of plain text as paragraphs."""
    nodes = []
    for index, block in enumerate(re.split(r'\n\s*\n', text)):
        paragraph = re.sub(r'\s+', ' ', block).strip()
        if paragraph:
            container = f"p{index}"
            nodes.append(TextNode(key=f"{container}/0", text=paragraph, container=container))
    return nodes


def extract_nodes(file_path, console):
    """Extract text nodes from the file based on its extension."""
    file_extension = os.path.splitext(file_path)[1].lower()
    if file_extension in ('.html', '.htm'):
        return _extract_nodes_html(file_path, console)
    elif file_extension == '.md':
        return _extract_nodes_md(file_path, console)
    elif file_extension == '.txt':
        return _extract_nodes_txt(file_path, console)
    elif file_extension == '.pdf':
        return _extract_nodes_pdf(file_path, console)
    else:
        console.print(f"[bold red]Error: Unsupported file type '{file_extension}'. "
                      "Supported types are .html, .htm, .md, .txt and .pdf.[/bold red]")
        return None


def _read_text(file_path):
    with open(file_path, 'r', encoding='utf-8', errors='replace') as f:
        return f.read()


def _extract_nodes_html(file_path, console):
    try:
        return parse_html(_read_text(file_path))
    except OSError as e:
        console.print(f"[bold red]Error reading HTML file: {e}[/bold red]")
        return None


def _extract_nodes_md(file_path, console):
    try:
        import markdown
    except ImportError:
        console.print("[bold red]Error: 'markdown' package not found. Please run 'pip install markdown'.[/bold red]")
        return None
    try:
        html = markdown.markdown(_read_text(file_path), extensions=['extra'])
    except OSError as e:
        console.print(f"[bold red]Error reading Markdown file: {e}[/bold red]")
        return None
    return parse_html(html)


def _extract_nodes_txt(file_path, console):
    try:
        return parse_text(_read_text(file_path))
    except OSError as e:
        console.print(f"[bold red]Error reading text file: {e}[/bold red]")
        return None


def _extract_nodes_pdf(file_path, console):
    """Uses PyMuPDF text blocks as containers and spans as nodes with page geometry."""
    try:
        import fitz
    except ImportError:
        console.print("[bold red]Error: 'PyMuPDF' package not found. Please run 'pip install PyMuPDF'.[/bold red]")
        return None

    nodes = []
    try:
        doc = fitz.open(file_path)
    except Exception as e:
        console.print(f"[bold red]Error opening PDF file: {e}[/bold red]")
        return None
    with doc:
        page_top = 0.0
        for page_number, page in enumerate(doc):
            blocks = page.get_text("dict").get("blocks", [])
            for block_number, block in enumerate(blocks):
                if block.get("type", 0) != 0:
                    continue
                container = f"page{page_number}-block{block_number}"
                run = 0
                lines = block.get("lines", [])
                for line_number, line in enumerate(lines):
                    spans = [span for span in line.get("spans", []) if span.get("text")]
                    for span_number, span in enumerate(spans):
                        text = span["text"]
                        last_in_line = span_number == len(spans) - 1
                        if last_in_line and line_number < len(lines) - 1 and not text.endswith((" ", "-")):
                            text += " "
                        x0, y0, x1, y1 = span["bbox"]
                        nodes.append(TextNode(
                            key=f"{container}/{run}",
                            text=text,
                            bounding_box=BoundingBox(x0, page_top + y0, x1 - x0, y1 - y0),
                            container=container,
                        ))
                        run += 1
            page_top += page.rect.height
    return nodes
