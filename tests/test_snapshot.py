from pathlib import Path

from rested.rested_ast import RequestMethod
from rested.rested_environment import Environment
from rested.rested_interpreter import interpret
from rested.rested_ir import Header, LogDestination, Request, RequestItem
from rested.rested_locations import Location, Span
from rested.rested_parser import parse
from rested.rested_snapshot import snapshot, to_curl_string

SPAN = Span(Location(0, 0), Location(0, 1))


def test_plain_get():
    item = RequestItem(Request(RequestMethod.GET, "https://a.io/x"), SPAN)
    assert to_curl_string(item) == "curl -X GET https://a.io/x"


def test_headers_body_name_and_log_file():
    request = Request(
        RequestMethod.POST,
        "https://a.io/users",
        [Header("Content-Type", "application/json"), Header("X-Id", "7")],
        '{"name":"<b>"}',
    )
    item = RequestItem(request, SPAN, name="create", log_destination=LogDestination(Path("out.json")))
    assert to_curl_string(item) == (
        "echo create\n"
        "curl -X POST -H \"Content-Type: application/json\" -H \"X-Id: 7\" "
        "-d '{\"name\":\"<b>\"}' https://a.io/users 1> out.json"
    )


def test_dbg_wraps_in_set_xe():
    item = RequestItem(Request(RequestMethod.DELETE, "https://a.io/x"), SPAN, dbg=True)
    assert to_curl_string(item) == "set -xe\ncurl -X DELETE https://a.io/x\nset +xe"


def test_log_to_stdout_has_no_redirect():
    item = RequestItem(Request(RequestMethod.GET, "https://a.io"), SPAN, log_destination=LogDestination())
    assert to_curl_string(item) == "curl -X GET https://a.io"


def test_snapshot_of_a_script():
    source = 'set BASE_URL "https://a.io"\n@name("one")\nget /1\n@skip\nget /2\nput /3 {\n  body "x"\n}'
    items = interpret(parse(source), Environment("unused.json"))
    assert snapshot(items) == (
        "echo one\ncurl -X GET https://a.io/1\n\n"
        "curl -X PUT -d 'x' https://a.io/3\n\n"
    )
