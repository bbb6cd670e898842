"""Unit tests for ContextHistory."""

from parley_server.conversation import ContextHistory, ToolCall, ToolResponse


def test_empty_history():
    history = ContextHistory()
    assert len(history) == 0
    assert history.serialize_for_api() == []


def test_add_user_and_model_turns():
    history = ContextHistory()
    history.add_user_message("Hi")
    history.add_model_response("Hello!", [ToolCall(name="fs:read", args={"path": "a"})])

    assert history.contents == [
        {"role": "user", "parts": [{"text": "Hi"}]},
        {
            "role": "model",
            "parts": [
                {"text": "Hello!"},
                {"functionCall": {"name": "fs:read", "args": {"path": "a"}}},
            ],
        },
    ]


def test_model_response_with_only_tool_calls_has_no_text_part():
    history = ContextHistory()
    history.add_model_response("", [ToolCall(name="fs:read")])

    assert history.contents[0]["parts"] == [{"functionCall": {"name": "fs:read", "args": {}}}]


def test_add_tool_responses():
    history = ContextHistory()
    history.add_tool_responses([ToolResponse(name="fs:read", response={"result": "x"})])
    history.add_tool_responses([])

    assert history.contents == [
        {
            "role": "user",
            "parts": [{"functionResponse": {"name": "fs:read", "response": {"result": "x"}}}],
        }
    ]


def test_serialized_contents_are_copies():
    history = ContextHistory([{"role": "user", "parts": [{"text": "Hi"}]}])

    serialized = history.serialize_for_api()
    serialized.append({"role": "model", "parts": []})
    serialized[0]["parts"][0]["text"] = "changed"

    assert history.contents == [{"role": "user", "parts": [{"text": "Hi"}]}]


def test_load_and_clear():
    contents = [{"role": "user", "parts": [{"text": "Hi"}]}]
    history = ContextHistory()

    history.load(contents)
    contents.append({"role": "model", "parts": []})
    assert len(history) == 1

    history.clear()
    assert len(history) == 0
