from leger.table import format_table, print_table


def test_worked_example():
    assert format_table(["A", "BB"], [["x", "y"]]) == "A  BB  \n-  --  \nx  y   \n"


def test_columns_widen_to_longest_cell():
    out = format_table(["NAME", "STATUS"], [["nginx-proxy", "running"], ["db", "stopped"]])
    lines = out.splitlines()
    assert len({len(line) for line in lines}) == 1
    assert lines[1].split() == ["-" * len("nginx-proxy"), "-" * len("running")]
    assert lines[2].startswith("nginx-proxy  ")


def test_extra_cells_are_dropped():
    out = format_table(["A"], [["x", "extra"]])
    assert "extra" not in out
    assert out.splitlines()[2].strip() == "x"


def test_no_rows_gives_header_and_separator():
    out = format_table(["H1", "H2"], [])
    assert out.count("\n") == 2


def test_print_table_matches_format(capsys):
    headers, rows = ["K", "V"], [["a", "b"]]
    print_table(headers, rows)
    assert capsys.readouterr().out == format_table(headers, rows)