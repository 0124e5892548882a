from querytool.verifier import StatementVerifier


def test_single_select_is_ok():
    r = StatementVerifier().verify(
        "SELECT `t`.`a` FROM `t` WHERE `t`.`a` = ?", dialect="mysql"
    )
    assert r.ok
    assert r.notes["statement_count"] == 1


def test_tsql_paged_select_is_ok():
    r = StatementVerifier().verify(
        "SELECT [t].[a] FROM [dbo].[t] ORDER BY [t].[a] "
        "OFFSET 0 ROWS FETCH NEXT 10 ROWS ONLY",
        dialect="tsql",
    )
    assert r.ok


def test_non_select_is_rejected():
    r = StatementVerifier().verify("DELETE FROM t", dialect="mysql")
    assert not r.ok
    assert r.reason == "non_select"


def test_multiple_statements_are_rejected():
    r = StatementVerifier().verify("SELECT 1; DROP TABLE t", dialect="mysql")
    assert not r.ok
    assert r.reason == "multiple_statements"


def test_empty_sql():
    r = StatementVerifier().verify("   ", dialect="mysql")
    assert not r.ok
    assert r.reason == "empty_sql"
