from od_get.config import AppConfig, DownloadConfig, load_config
from od_get.main import apply_args, build_parser


def test_missing_file_gives_defaults(tmp_path):
    assert load_config(str(tmp_path / "nope.yaml")) == AppConfig()


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert load_config(str(path)) == AppConfig()


def test_loads_values_and_ignores_unknown_keys(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "url: http://od.test/pub/\n"
        "data_dir: mirror\n"
        "state_store_path: state.json\n"
        "shiny: true\n"
        "download:\n"
        "  max_files: 10\n"
        "  parse_workers: 2\n"
        "  retries: 5\n"
    )

    config = load_config(str(path))

    assert config.url == "http://od.test/pub/"
    assert config.data_dir == "mirror"
    assert config.state_store_path == "state.json"
    assert config.download == DownloadConfig(max_files=10, parse_workers=2)


def test_cli_overrides_config():
    args = build_parser().parse_args([
        "http://od.test/x/", "-s", "s.json", "-o", "out",
        "--max-files", "3", "--max-bytes", "0", "--max-depth", "2", "--no-download",
    ])
    config = AppConfig(data_dir="data")
    config.download.max_bytes = 100

    config = apply_args(config, args)

    assert config.url == "http://od.test/x/"
    assert config.state_store_path == "s.json"
    assert config.data_dir == "out"
    assert config.download.max_files == 3
    assert config.download.max_bytes == 0
    assert config.max_depth == 2
    assert config.no_download


def test_cli_leaves_config_alone_without_flags():
    config = apply_args(AppConfig(url="http://od.test/y/", max_depth=4), build_parser().parse_args([]))

    assert config.url == "http://od.test/y/"
    assert config.max_depth == 4
