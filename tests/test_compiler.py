import pytest

from querytool.compiler import QueryCompiler
from querytool.errors import InvalidFilterError, InvalidQueryError, InvalidSortError
from querytool.types import Filter, PageSpec, SortSpec


def test_greater_than_filter_binds_value_as_parameter():
    q = QueryCompiler("mysql").compile(
        "users",
        ["id", "name"],
        {"age": Filter("30", "greaterThan")},
        page=PageSpec(page=1, page_size=10),
    )
    assert q.data_sql == (
        "SELECT `users`.`id`, `users`.`name` FROM `users` "
        "WHERE `users`.`age` > ? LIMIT ? OFFSET ?"
    )
    assert q.params == ["30"]
    assert q.data_params == ["30", 10, 0]


@pytest.mark.parametrize(
    "operator, sql_op, bound",
    [
        ("equals", "=", "Jo"),
        ("contains", "LIKE", "%Jo%"),
        ("startsWith", "LIKE", "Jo%"),
        ("endsWith", "LIKE", "%Jo"),
        ("lessThan", "<", "Jo"),
    ],
)
def test_operator_templates(operator, sql_op, bound):
    q = QueryCompiler("mysql").compile("users", ["name"], {"name": Filter("Jo", operator)})
    assert f"WHERE `users`.`name` {sql_op} ?" in q.data_sql
    assert q.params == [bound]


def test_count_shares_from_and_where_with_data():
    q = QueryCompiler("mysql").compile(
        "users",
        ["id"],
        {"name": Filter("Jo", "contains"), "age": Filter("30", "lessThan")},
        SortSpec("id", "desc"),
        PageSpec(page=3, page_size=5),
        schema="shop",
    )
    where = " FROM `shop`.`users` WHERE `users`.`name` LIKE ? AND `users`.`age` < ?"
    assert q.count_sql == "SELECT COUNT(*) AS total" + where
    assert q.data_sql.startswith("SELECT `users`.`id`" + where)
    assert " ORDER BY `users`.`id` DESC LIMIT ? OFFSET ?" in q.data_sql
    assert q.params == ["%Jo%", "30"]
    assert q.page_params == [5, 10]
    # Placeholder count matches bound values for both statements.
    assert q.count_sql.count("?") == len(q.params)
    assert q.data_sql.count("?") == len(q.data_params)


def test_empty_filter_values_are_skipped():
    q = QueryCompiler("mysql").compile(
        "users", ["id"], {"name": Filter(""), "email": Filter(None, "contains")}
    )
    assert "WHERE" not in q.data_sql
    assert "WHERE" not in q.count_sql
    assert q.params == []


def test_empty_filter_still_rejects_unknown_operator():
    with pytest.raises(InvalidFilterError):
        QueryCompiler("mysql").compile("users", ["id"], {"name": Filter("", "like")})


def test_no_limit_omits_pagination():
    q = QueryCompiler("mssql").compile(
        "users", ["id"], page=PageSpec(page=4, page_size=10, no_limit=True)
    )
    assert "OFFSET" not in q.data_sql
    assert "FETCH" not in q.data_sql
    assert "ORDER BY" not in q.data_sql
    assert q.page_params == []


def test_mssql_paging_without_sort_orders_by_first_column_once():
    q = QueryCompiler("mssql").compile(
        "users", ["name", "id"], page=PageSpec(page=2, page_size=10), schema="dbo"
    )
    assert q.data_sql == (
        "SELECT [users].[name], [users].[id] FROM [dbo].[users] "
        "ORDER BY [users].[name] OFFSET 10 ROWS FETCH NEXT 10 ROWS ONLY"
    )
    assert q.data_sql.count("ORDER BY") == 1
    assert q.data_params == []


def test_mssql_explicit_sort_is_used():
    q = QueryCompiler("mssql").compile(
        "users", ["name"], sort=SortSpec("id", "ASC"), page=PageSpec()
    )
    assert "ORDER BY [users].[id] ASC OFFSET 0 ROWS FETCH NEXT 100 ROWS ONLY" in q.data_sql
    assert q.data_sql.count("ORDER BY") == 1


def test_invalid_inputs():
    c = QueryCompiler("mysql")
    with pytest.raises(InvalidQueryError):
        c.compile("users", [])
    with pytest.raises(InvalidFilterError):
        c.compile("users", ["id"], {"id": Filter("1", "between")})
    with pytest.raises(InvalidSortError):
        c.compile("users", ["id"], sort=SortSpec("id", "sideways"))
