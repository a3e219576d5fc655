"""Tests for docsite.crawlers.python."""

from __future__ import annotations

from docsite.crawlers import CrawlOptions, PythonCrawler
from docsite.models import SymbolRef


def _crawl(project_builder, files, **options):
    crawler = PythonCrawler()
    return crawler.crawl(
        [str(project_builder.path(file)) for file in files],
        CrawlOptions(root=project_builder.path(), **options),
    )


def test_crawl_maps_decorated_classes_to_kinds(project_builder) -> None:
    project_builder.write_sample()

    result = _crawl(project_builder, ["app/core.py"])

    assert [entry.name for entry in result.components] == ["RootComponent"]
    assert [entry.name for entry in result.injectables] == ["ApiService"]
    assert [entry.name for entry in result.modules] == ["AppModule", "EmptyModule"]
    assert result.files == ("app/core.py",)

    root = result.components[0]
    assert root.file == "app/core.py"
    assert root.description == "Top level component."
    assert root.template_url == "root.html"
    assert root.metadata["selector"] == "app-root"
    assert root.metadata["members"] == [{"name": "render", "documented": True}]
    assert root.id.startswith("component-RootComponent-")


def test_crawl_resolves_module_relation_kinds(project_builder) -> None:
    project_builder.write_sample()

    result = _crawl(project_builder, ["app/core.py"])

    app_module = result.modules[0]
    assert app_module.relation("declarations") == [
        SymbolRef("RootComponent", "component"),
        SymbolRef("MissingWidget", "unknown"),
    ]
    assert app_module.relation("providers") == [SymbolRef("ApiService", "injectable")]
    assert app_module.relation("bootstrap") == [SymbolRef("RootComponent", "component")]
    assert app_module.has_relations()
    assert not result.modules[1].has_relations()


def test_crawl_uses_known_kinds_for_partial_crawls(project_builder) -> None:
    project_builder.write(
        {
            "app/shell.py": """
                @module(declarations=[HeaderComponent], providers=[Cache])
                class ShellModule:
                    pass
            """
        }
    )

    result = _crawl(project_builder, ["app/shell.py"], known_kinds={"HeaderComponent": "component"})

    module = result.modules[0]
    assert module.relation("declarations") == [SymbolRef("HeaderComponent", "component")]
    # Providers default to injectables when nothing else is known.
    assert module.relation("providers") == [SymbolRef("Cache", "injectable")]


def test_crawl_collects_miscellaneous_and_interfaces(project_builder) -> None:
    project_builder.write_sample()

    result = _crawl(project_builder, ["app/util.py"])

    misc = result.miscellaneous
    assert [entry.name for entry in misc.typealiases] == ["Identifier"]
    assert [entry.name for entry in misc.variables] == ["DEFAULT_LIMIT"]
    assert [entry.name for entry in misc.enumerations] == ["Color"]
    assert [entry.name for entry in misc.functions] == ["helper"]
    assert misc.functions[0].description == "Help out."
    assert [entry.name for entry in result.interfaces] == ["Greeter"]
    assert [entry.name for entry in result.classes] == ["Plain"]


def test_crawl_builds_route_tree(project_builder) -> None:
    project_builder.write_sample()

    result = _crawl(project_builder, ["app/core.py"])

    assert len(result.routes.children) == 1
    home = result.routes.children[0]
    assert home.path == "home"
    assert home.component == "RootComponent"
    assert home.file == "app/core.py"
    assert [child.path for child in home.children] == ["detail"]
    assert result.routes.count() == 2


def test_crawl_skips_private_names_and_bare_decorators(project_builder) -> None:
    project_builder.write(
        {
            "pkg/mod.py": """
                import markers

                _hidden = 1


                def _private():
                    pass


                @markers.pipe
                class DatePipe:
                    pass


                @markers.directive(selector="[hl]")
                class Highlight:
                    pass
            """
        }
    )

    result = _crawl(project_builder, ["pkg/mod.py"])

    assert result.miscellaneous.is_empty()
    assert [entry.name for entry in result.pipes] == ["DatePipe"]
    assert [entry.name for entry in result.directives] == ["Highlight"]
    assert result.directives[0].metadata["selector"] == "[hl]"


def test_crawl_skips_unparseable_and_missing_files(project_builder) -> None:
    project_builder.write(
        {
            "pkg/broken.py": "def broken(:\n",
            "pkg/ok.py": "class Fine:\n    pass\n",
        }
    )

    result = _crawl(project_builder, ["pkg/broken.py", "pkg/gone.py", "pkg/ok.py"])

    assert [entry.name for entry in result.classes] == ["Fine"]
    # Files that could not be read are still reported as crawled.
    assert result.files == ("pkg/broken.py", "pkg/gone.py", "pkg/ok.py")


def test_entry_ids_are_stable(project_builder) -> None:
    project_builder.write_sample()

    first = _crawl(project_builder, ["app/util.py"])
    second = _crawl(project_builder, ["app/util.py"])

    assert [entry.id for entry in first.iter_entries()] == [entry.id for entry in second.iter_entries()]


def test_crawl_keeps_the_last_definition_of_a_name(project_builder) -> None:
    project_builder.write(
        {
            "pkg/dup.py": '''
                class Alpha:
                    """First draft."""


                LIMIT = 1


                class Alpha:
                    """Final version."""


                LIMIT = 2


                def Beta():
                    pass


                class Beta:
                    pass
            '''
        }
    )

    result = _crawl(project_builder, ["pkg/dup.py"])

    assert [entry.name for entry in result.classes] == ["Alpha", "Beta"]
    assert result.classes[0].description == "Final version."
    assert [entry.name for entry in result.miscellaneous.variables] == ["LIMIT"]
    assert result.miscellaneous.functions == []
    ids = [entry.id for entry in result.iter_entries()]
    assert len(ids) == len(set(ids))
