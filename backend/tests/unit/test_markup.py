"""
内联标记解析单元测试

每个模块完成后必须运行：pytest tests/unit/test_markup.py -v
"""

from report_engine.doc_gen.markup import (
    BulletList,
    InlineRun,
    Paragraph,
    normalize_breaks,
    parse_inline,
    render_markup,
    tokenize,
)


class TestBreaks:
    """断行测试"""

    def test_break_marker(self):
        """测试 [BR] 视为断行"""
        blocks = tokenize("First[BR]Second")
        assert [b.runs[0].text for b in blocks] == ["First", "Second"]

    def test_collapse_excess_breaks(self):
        """测试3个以上断行折叠为2个"""
        assert normalize_breaks("a\n\n\n\nb") == "a\n\nb"
        assert normalize_breaks("a[BR][BR][BR]b") == "a\n\nb"

    def test_crlf(self):
        """测试Windows换行"""
        assert len(tokenize("a\r\nb")) == 2

    def test_empty_lines_dropped(self):
        """测试列表外空行被丢弃"""
        blocks = tokenize("\n\nOnly line\n\n")
        assert blocks == [Paragraph((InlineRun("Only line"),))]

    def test_empty_input(self):
        """测试空输入"""
        assert tokenize("") == []
        assert render_markup("") == ""


class TestBulletGrouping:
    """项目符号分组测试"""

    def test_bullet_run_with_blank_lines(self):
        """测试3个项目符号行以空行分隔时为1个列表3项"""
        text = "[BULLET]One\n\n[BULLET]Two\n\n[BULLET]Three"
        blocks = tokenize(text)
        assert len(blocks) == 1
        assert isinstance(blocks[0], BulletList)
        assert len(blocks[0].items) == 3

    def test_non_bullet_closes_run(self):
        """测试非项目符号行关闭列表"""
        blocks = tokenize("[BULLET]One\n[BULLET]Two\nAfter")
        assert isinstance(blocks[0], BulletList)
        assert isinstance(blocks[1], Paragraph)
        assert blocks[1].runs[0].text == "After"

    def test_open_bullet_run_flushed(self):
        """测试末尾未关闭的列表被输出"""
        blocks = tokenize("Intro\n• a\n• b")
        assert isinstance(blocks[-1], BulletList)
        assert [item[0].text for item in blocks[-1].items] == ["a", "b"]

    def test_two_separate_runs(self):
        """测试被段落隔开的两个列表"""
        blocks = tokenize("[BULLET]a\nmiddle\n[BULLET]b")
        assert [type(b) for b in blocks] == [BulletList, Paragraph, BulletList]

    def test_marker_case_insensitive(self):
        """测试项目符号标记与断行标记同样不区分大小写"""
        blocks = tokenize("[bullet]One[br][Bullet]Two")
        assert len(blocks) == 1
        assert [item[0].text for item in blocks[0].items] == ["One", "Two"]

    def test_bullet_html(self):
        """测试列表HTML输出"""
        html = render_markup("[BULLET]One\n[BULLET]Two")
        assert html == '<ul class="bullets"><li>One</li><li>Two</li></ul>'


class TestInline:
    """行内强调测试"""

    def test_bold(self):
        """测试粗体"""
        assert render_markup("a **b** c") == "<p>a <strong>b</strong> c</p>"

    def test_underline(self):
        """测试下划线"""
        assert render_markup("__x__") == "<p><u>x</u></p>"

    def test_inline_order(self):
        """测试粗体内的下划线"""
        runs = parse_inline("**a __b__**")
        assert InlineRun("b", bold=True, underline=True) in runs

    def test_unmatched_marker_literal(self):
        """测试未配对标记原样保留"""
        assert render_markup("5 ** 2") == "<p>5 ** 2</p>"

    def test_bold_inside_bullet(self):
        """测试列表项内粗体"""
        html = render_markup("[BULLET]**Note:** keep clear")
        assert "<li><strong>Note:</strong> keep clear</li>" in html

    def test_html_passthrough(self):
        """测试可信HTML片段不转义"""
        html = render_markup('<img src="x" />')
        assert '<img src="x" />' in html
