"""Unit tests for the file-operation tools, run through the executor."""

import pytest

from codeloom.interaction import FileChangeType
from codeloom.repository import RepoResult


class TestReadWrite:
    @pytest.mark.asyncio
    async def test_read_file(self, run_tool, write_files):
        write_files({"index.html": "<h1>Hi</h1>"})
        result = await run_tool("read_file", {"path": "index.html"})

        assert result.success
        assert result.output == "<h1>Hi</h1>"

    @pytest.mark.asyncio
    async def test_read_missing_file(self, run_tool):
        result = await run_tool("read_file", {"path": "nope.txt"})

        assert not result.success
        assert result.error == "Failed to read file: File not found: nope.txt"

    @pytest.mark.asyncio
    async def test_write_creates_file(self, run_tool, project_dir, callback):
        result = await run_tool("write_file", {"path": "css/site.css", "content": "a\nb\n"})

        assert result.success
        assert result.output == "File created: css/site.css (+2 -0)"
        assert (project_dir / "css/site.css").read_text() == "a\nb\n"
        [event] = callback.file_events
        assert event.change_type is FileChangeType.CREATED
        assert event.old_content is None
        assert event.new_content == "a\nb\n"

    @pytest.mark.asyncio
    async def test_write_updates_file(self, run_tool, write_files, project_dir, callback):
        write_files({"a.txt": "one\ntwo"})
        result = await run_tool("write_file", {"path": "a.txt", "content": "one\n2"})

        assert result.output == "File updated: a.txt (+1 -1)"
        assert (project_dir / "a.txt").read_text() == "one\n2"
        [event] = callback.file_events
        assert event.change_type is FileChangeType.MODIFIED
        assert event.old_content == "one\ntwo"

    @pytest.mark.asyncio
    async def test_write_falls_back_when_create_fails(self, run_tool, repository, monkeypatch):
        async def failing_create(*args, **kwargs):
            return RepoResult.failure("File already exists")

        monkeypatch.setattr(repository, "create_file", failing_create)
        result = await run_tool("write_file", {"path": "race.txt", "content": "x"})

        assert result.success
        assert result.output.startswith("File created: race.txt")

    @pytest.mark.asyncio
    async def test_missing_argument_in_any_order(self, run_tool):
        result = await run_tool("write_file", '{"content": "x"}')
        assert result.error == "Missing required argument: path"


class TestListAndInfo:
    @pytest.mark.asyncio
    async def test_list_files_tree(self, run_tool, write_files):
        write_files({"index.html": "", "src/main.js": "", "src/lib/util.js": "", ".git/HEAD": ""})
        result = await run_tool("list_files")

        assert result.output == "\n".join([
            "📁 src/",
            "  📁 lib/",
            "    📄 util.js",
            "  📄 main.js",
            "📄 index.html",
        ])

    @pytest.mark.asyncio
    async def test_list_subfolder(self, run_tool, write_files):
        write_files({"index.html": "", "src/main.js": ""})
        result = await run_tool("list_files", {"path": "src"})
        assert result.output == "📄 main.js"

    @pytest.mark.asyncio
    async def test_list_missing_folder(self, run_tool):
        result = await run_tool("list_files", {"path": "nowhere"})
        assert result.error == "Directory not found: nowhere"

    @pytest.mark.asyncio
    async def test_list_empty_project(self, run_tool):
        assert (await run_tool("list_files")).output == "Directory is empty"

    @pytest.mark.asyncio
    async def test_get_file_info(self, run_tool, write_files):
        write_files({"js/app.js": "a\nb\nc\n"})
        result = await run_tool("get_file_info", {"path": "js/app.js"})

        assert result.output == "\n".join([
            "Path: js/app.js",
            "Type: file",
            "Size: 6 bytes",
            "Extension: js",
            "Lines: 3",
        ])

    @pytest.mark.asyncio
    async def test_get_folder_info(self, run_tool, write_files):
        write_files({"js/app.js": "", "js/lib/x.js": ""})
        result = await run_tool("get_file_info", {"path": "js"})
        assert "Type: folder" in result.output
        assert "Files: 2" in result.output
        assert "Folders: 1" in result.output

    @pytest.mark.asyncio
    async def test_project_summary(self, run_tool, write_files):
        write_files({"index.html": "<p>", "a.js": "1", "src/b.js": "22"})
        result = await run_tool("get_project_summary")

        assert "Files: 3" in result.output
        assert "Folders: 1" in result.output
        assert "Total size: 6 bytes" in result.output
        assert "  js: 2" in result.output
        assert "  📁 src/" in result.output


class TestMutations:
    @pytest.mark.asyncio
    async def test_delete_file(self, run_tool, write_files, project_dir, callback):
        write_files({"old.txt": "bye"})
        result = await run_tool("delete_file", {"path": "old.txt"})

        assert result.output == "File deleted successfully: old.txt"
        assert not (project_dir / "old.txt").exists()
        [event] = callback.file_events
        assert event.change_type is FileChangeType.DELETED
        assert event.old_content == "bye"

    @pytest.mark.asyncio
    async def test_create_folder(self, run_tool, project_dir):
        result = await run_tool("create_folder", {"path": "assets/img"})
        assert result.success
        assert (project_dir / "assets/img").is_dir()

    @pytest.mark.asyncio
    async def test_rename_file(self, run_tool, write_files, project_dir, callback):
        write_files({"a.js": "x"})
        result = await run_tool("rename_file", {"old_path": "a.js", "new_path": "b.js"})

        assert result.output == "File renamed from 'a.js' to 'b.js'"
        assert (project_dir / "b.js").exists()
        [event] = callback.file_events
        assert event.change_type is FileChangeType.RENAMED
        assert event.path == "b.js"
        assert event.source_path == "a.js"

    @pytest.mark.asyncio
    async def test_copy_and_move(self, run_tool, write_files, project_dir, callback):
        write_files({"a.js": "x"})
        copied = await run_tool(
            "copy_file", {"source_path": "a.js", "destination_path": "lib/a.js"},
        )
        moved = await run_tool(
            "move_file", {"source_path": "a.js", "destination_path": "b.js"},
        )

        assert copied.success and moved.success
        assert (project_dir / "lib/a.js").read_text() == "x"
        assert (project_dir / "b.js").exists()
        assert not (project_dir / "a.js").exists()
        assert [e.change_type for e in callback.file_events] == [
            FileChangeType.COPIED, FileChangeType.MOVED,
        ]

    @pytest.mark.asyncio
    async def test_copy_onto_existing_fails(self, run_tool, write_files):
        write_files({"a.js": "x", "b.js": "y"})
        result = await run_tool("copy_file", {"source_path": "a.js", "destination_path": "b.js"})
        assert result.error == "Failed to copy file: File already exists: b.js"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("line_number,expected", [
        (0, "new\na\nb\n"),
        (1, "a\nnew\nb\n"),
        (2, "a\nb\nnew\n"),
        (99, "a\nb\nnew\n"),
    ])
    async def test_insert_at_line(self, run_tool, write_files, project_dir, line_number, expected):
        write_files({"f.txt": "a\nb\n"})
        result = await run_tool(
            "insert_at_line", {"path": "f.txt", "line_number": line_number, "content": "new"},
        )

        assert result.success
        assert (project_dir / "f.txt").read_text() == expected

    @pytest.mark.asyncio
    async def test_insert_at_line_without_trailing_newline(self, run_tool, write_files, project_dir):
        write_files({"f.txt": "a\nb"})
        await run_tool("insert_at_line", {"path": "f.txt", "line_number": 5, "content": "c"})
        assert (project_dir / "f.txt").read_text() == "a\nb\nc\n"

    @pytest.mark.asyncio
    async def test_insert_at_line_rejects_non_numeric_line(self, run_tool, write_files):
        write_files({"f.txt": "a"})
        result = await run_tool(
            "insert_at_line", {"path": "f.txt", "line_number": "second", "content": "x"},
        )
        assert result.error.startswith("Invalid argument line_number:")

    @pytest.mark.asyncio
    async def test_append_to_existing(self, run_tool, write_files, project_dir):
        write_files({"log.txt": "one"})
        result = await run_tool("append_to_file", {"path": "log.txt", "content": "two"})

        assert result.output == "Appended to log.txt (+1 -0)"
        assert (project_dir / "log.txt").read_text() == "one\ntwo"

    @pytest.mark.asyncio
    async def test_append_creates_missing_file(self, run_tool, project_dir, callback):
        result = await run_tool("append_to_file", {"path": "new.txt", "content": "hello"})

        assert result.success
        assert (project_dir / "new.txt").read_text() == "hello"
        assert callback.file_events[0].change_type is FileChangeType.CREATED


class TestFindAndRead:
    @pytest.mark.asyncio
    async def test_find_files_by_extension(self, run_tool, write_files):
        write_files({"app.js": "", "app.css": "", "src/main.js": ""})
        result = await run_tool("find_files", {"pattern": "*.js"})
        assert result.output.splitlines() == ["app.js", "src/main.js"]

    @pytest.mark.asyncio
    async def test_find_files_below_path(self, run_tool, write_files):
        write_files({"app.js": "", "src/main.js": ""})
        result = await run_tool("find_files", {"pattern": "*.js", "path": "src"})
        assert result.output == "src/main.js"

    @pytest.mark.asyncio
    async def test_find_files_invalid_pattern(self, run_tool, write_files):
        write_files({"(weird).js": "", "other.js": ""})
        result = await run_tool("find_files", {"pattern": "(weird"})

        assert result.success
        assert result.output == "(weird).js"

    @pytest.mark.asyncio
    async def test_find_files_no_match(self, run_tool, write_files):
        write_files({"a.txt": ""})
        result = await run_tool("find_files", {"pattern": "*.py"})
        assert result.output == "No files matching: *.py"

    @pytest.mark.asyncio
    async def test_read_lines(self, run_tool, write_files):
        write_files({"f.txt": "one\ntwo\nthree\nfour"})
        result = await run_tool("read_lines", {"path": "f.txt", "start_line": 2, "end_line": 3})
        assert result.output == "2: two\n3: three"

    @pytest.mark.asyncio
    async def test_read_lines_to_end(self, run_tool, write_files):
        write_files({"f.txt": "one\ntwo\nthree"})
        result = await run_tool("read_lines", {"path": "f.txt", "start_line": "2", "end_line": 50})
        assert result.output == "2: two\n3: three"

    @pytest.mark.asyncio
    async def test_read_lines_past_end(self, run_tool, write_files):
        write_files({"f.txt": "one"})
        result = await run_tool("read_lines", {"path": "f.txt", "start_line": 5})
        assert not result.success

    @pytest.mark.asyncio
    async def test_diff_files(self, run_tool, write_files):
        write_files({"a.txt": "x\ny", "b.txt": "x\nz"})
        result = await run_tool("diff_files", {"path1": "a.txt", "path2": "b.txt"})

        assert result.output == (
            "Comparing a.txt and b.txt: 1 differing line(s) (+1 -1)\n"
            "Line 2:\n- y\n+ z"
        )
