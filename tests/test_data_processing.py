"""Test loading, UN reshaping and V-Dem selection in analysis.data_processing."""

import numpy as np
import pandas as pd
import pytest

from analysis.data_processing import (
    load_table, load_sources, coerce_numeric, normalize_year, UNHealthReshaper, VDemSelector,
)
from core.config import SourceConfig, UNHealthConfig
from core.exceptions import SourceNotFoundError, ParseError, MissingColumnError, DuplicateKeyError
from conftest import make_un_raw, PHYSICIANS, HEALTH_EXP, UNDERNOURISHMENT


class TestLoadTable:
    def test_reads_all_cells_as_strings(self, tmp_path):
        path = tmp_path / "un.csv"
        path.write_text("Country Name,Country Code,X2000..YR2000.\nFrance,FRA,3.3\nJapan,JPN,..\n")

        df = load_table(path)

        assert list(df.columns) == ["Country Name", "Country Code", "X2000..YR2000."]
        assert df["X2000..YR2000."].tolist() == ["3.3", ".."]

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceNotFoundError):
            load_table(tmp_path / "does_not_exist.csv")

    def test_row_with_extra_fields(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("a,b,c\n1,2,3\n4,5,6,7\n")
        with pytest.raises(ParseError):
            load_table(path)

    def test_every_row_with_extra_field(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("a,b\n1,2,3\n4,5,6\n")
        with pytest.raises(ParseError):
            load_table(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(ParseError):
            load_table(path)

    def test_short_row_mid_file(self, tmp_path):
        path = tmp_path / "short.csv"
        path.write_text("country_name,country_text_id,year,v2x_corr\nFrance,FRA,2000,0.1\nGermany,DEU\n")

        with pytest.raises(ParseError, match="record 2"):
            load_table(path)

    def test_databank_footer_is_dropped(self, tmp_path):
        path = tmp_path / "footer.csv"
        path.write_text(
            "a,b,c\n1,2,3\n\n"
            "Data from database: World Development Indicators\n"
            "Last Updated: 12/22/2017\n"
        )

        df = load_table(path)

        assert len(df) == 1
        assert df.loc[0].tolist() == ["1", "2", "3"]

    def test_footer_text_before_data_is_rejected(self, tmp_path):
        path = tmp_path / "footer.csv"
        path.write_text("a,b,c\nLast Updated: 12/22/2017\n1,2,3\n")

        with pytest.raises(ParseError):
            load_table(path)

    def test_header_only(self, tmp_path):
        path = tmp_path / "header.csv"
        path.write_text("a,b,c\n")

        df = load_table(path)

        assert df.empty
        assert list(df.columns) == ["a", "b", "c"]

    def test_load_sources_uses_config_paths(self, tmp_path):
        (tmp_path / "un.csv").write_text("a\n1\n")
        (tmp_path / "vdem.csv").write_text("b\n2\n")

        un, vdem = load_sources(SourceConfig(data_dir=tmp_path, un_filename="un.csv", vdem_filename="vdem.csv"))

        assert list(un.columns) == ["a"]
        assert list(vdem.columns) == ["b"]


def test_coerce_numeric_counts_failures():
    df = pd.DataFrame({"a": ["1", "..", None], "b": ["x", "2.5", "3"]})

    out, coerced = coerce_numeric(df, ["a", "b"])

    assert coerced == 2
    assert out["a"].tolist()[0] == 1.0
    assert np.isnan(out["a"].tolist()[1])
    assert out["b"].dtype == "float64"
    # Input table is left untouched
    assert df["a"].tolist()[1] == ".."


def test_normalize_year():
    assert normalize_year(pd.Series(["1990", "2000.0"]), "t").tolist() == [1990, 2000]
    with pytest.raises(ParseError):
        normalize_year(pd.Series(["1990", "nineteen"]), "t")
    with pytest.raises(ParseError):
        normalize_year(pd.Series(["1990.5"]), "t")


class TestUNHealthReshaper:
    def test_year_columns_accept_both_label_styles(self):
        reshaper = UNHealthReshaper()
        df = pd.DataFrame(columns=["Country Name", "X1960..YR1960.", "2015 [YR2015]", "Notes", "X1999"])

        assert reshaper.year_columns(df) == {"X1960..YR1960.": 1960, "2015 [YR2015]": 2015}

    def test_year_labels_must_agree(self):
        reshaper = UNHealthReshaper()
        df = pd.DataFrame(columns=["X1990..YR1991.", "1990 [YR1991]", "X1990..YR1990."])

        assert reshaper.year_columns(df) == {"X1990..YR1990.": 1990}

    def test_long_records(self, un_raw, diagnostics):
        reshaper = UNHealthReshaper(diagnostics=diagnostics)

        long_df = reshaper.to_long_records(un_raw)

        assert list(long_df.columns) == ["Country Name", "Country Code", "year", "series_name", "value"]
        assert set(long_df["series_name"]) == {PHYSICIANS, HEALTH_EXP, UNDERNOURISHMENT}
        assert sorted(long_df["year"].unique()) == [2000, 2001]
        assert long_df["year"].dtype == "int64"
        assert "Series Code" not in long_df.columns
        # 3 countries x 3 series x 2 years, less the 3 cells without a value
        assert len(long_df) == 15
        assert long_df["value"].notna().all()
        assert diagnostics.total("coerced_to_missing") == 3
        assert diagnostics.total("series_dropped") == 1

    def test_reshape_one_row_per_country_year(self, un_raw):
        wide = UNHealthReshaper().reshape(un_raw)

        assert list(wide.columns) == [
            "Country Code", "Country Name", "year", PHYSICIANS, HEALTH_EXP, UNDERNOURISHMENT
        ]
        assert len(wide) == 6
        assert not wide.duplicated(subset=["Country Code", "year"]).any()

        usa = wide[(wide["Country Code"] == "USA") & (wide["year"] == 2000)].iloc[0]
        assert usa[PHYSICIANS] == 2.5
        assert usa[HEALTH_EXP] == 4000
        assert np.isnan(usa[UNDERNOURISHMENT])
        assert usa["Country Name"] == "United States"

        fra = wide[(wide["Country Code"] == "FRA") & (wide["year"] == 2001)].iloc[0]
        assert np.isnan(fra[HEALTH_EXP])

    def test_round_trip(self, un_raw):
        reshaper = UNHealthReshaper()
        key = ["Country Code", "year", "series_name"]

        original = reshaper.to_long_records(un_raw).sort_values(key).reset_index(drop=True)
        back = reshaper.to_long(reshaper.pivot_series(original)).sort_values(key).reset_index(drop=True)

        pd.testing.assert_frame_equal(original, back, check_dtype=False)

    def test_round_trip_with_partial_series(self):
        raw = make_un_raw([
            ("France", "FRA", PHYSICIANS, {2000: "3.3", 2001: "3.4"}),
            ("France", "FRA", HEALTH_EXP, {2000: "2200", 2001: ".."}),
        ])
        reshaper = UNHealthReshaper()
        key = ["Country Code", "year", "series_name"]

        original = reshaper.to_long_records(raw).sort_values(key).reset_index(drop=True)
        wide = reshaper.pivot_series(original)
        back = reshaper.to_long(wide).sort_values(key).reset_index(drop=True)

        assert wide[UNDERNOURISHMENT].isna().all()
        assert len(original) == 3
        pd.testing.assert_frame_equal(original, back, check_dtype=False)

    def test_absent_series_gives_empty_column(self):
        raw = make_un_raw([("France", "FRA", PHYSICIANS, {2000: "3.3", 2001: "3.4"})])

        wide = UNHealthReshaper().reshape(raw)

        assert UNDERNOURISHMENT in wide.columns
        assert wide[UNDERNOURISHMENT].isna().all()
        assert wide[UNDERNOURISHMENT].dtype == "float64"

    def test_no_series_of_interest(self):
        raw = make_un_raw([("France", "FRA", "GDP (current US$)", {2000: "1", 2001: "2"})])

        wide = UNHealthReshaper().reshape(raw)

        assert wide.empty
        assert list(wide.columns) == [
            "Country Code", "Country Name", "year", PHYSICIANS, HEALTH_EXP, UNDERNOURISHMENT
        ]

    def test_duplicate_series_rows(self):
        raw = make_un_raw([
            ("France", "FRA", PHYSICIANS, {2000: "3.3"}),
            ("France", "FRA", PHYSICIANS, {2000: "3.4"}),
        ])

        with pytest.raises(DuplicateKeyError) as excinfo:
            UNHealthReshaper().reshape(raw)
        assert excinfo.value.key == ["Country Code", "year", "series_name"]

    def test_pivot_rejects_duplicate_long_records(self, un_raw):
        reshaper = UNHealthReshaper()
        long_df = reshaper.to_long_records(un_raw)
        doubled = pd.concat([long_df, long_df.head(1)], ignore_index=True)

        with pytest.raises(DuplicateKeyError):
            reshaper.pivot_series(doubled)

    def test_rows_without_code_are_dropped(self, diagnostics):
        raw = make_un_raw([
            ("France", "FRA", PHYSICIANS, {2000: "3.3", 2001: "3.4"}),
            ("Unknown", np.nan, PHYSICIANS, {2000: "1.0", 2001: "1.0"}),
        ])

        wide = UNHealthReshaper(diagnostics=diagnostics).reshape(raw)

        assert wide["Country Code"].tolist() == ["FRA", "FRA"]
        assert diagnostics.total("missing_identifier") == 2

    def test_missing_identifier_column(self, un_raw):
        with pytest.raises(MissingColumnError) as excinfo:
            UNHealthReshaper().reshape(un_raw.drop(columns=["Series Name"]))
        assert excinfo.value.missing == ["Series Name"]

    def test_no_year_columns(self, un_raw):
        raw = un_raw[["Country Name", "Country Code", "Series Name", "Series Code"]]
        with pytest.raises(MissingColumnError):
            UNHealthReshaper().reshape(raw)

    def test_custom_series_selection(self, un_raw):
        config = UNHealthConfig(series={PHYSICIANS: "physicians_per_1000"})

        wide = UNHealthReshaper(config).reshape(un_raw)

        assert list(wide.columns) == ["Country Code", "Country Name", "year", PHYSICIANS]


class TestVDemSelector:
    def test_projects_whitelist(self, vdem_raw):
        selector = VDemSelector()

        df = selector.select(vdem_raw)

        assert list(df.columns) == selector.config.whitelist
        assert len(df.columns) == 13
        assert "v2x_polyarchy" not in df.columns
        assert df["year"].dtype == "int64"
        assert df["v2x_freexp_altinf"].dtype == "float64"
        assert df.loc[0, "v2x_freexp_altinf"] == 0.9

    def test_missing_whitelisted_columns(self, vdem_raw):
        with pytest.raises(MissingColumnError) as excinfo:
            VDemSelector().select(vdem_raw.drop(columns=["v2x_corr", "e_migdppc"]))
        assert excinfo.value.missing == ["e_migdppc", "v2x_corr"]

    def test_bad_indicator_values_become_missing(self, vdem_raw, diagnostics):
        vdem_raw.loc[0, "v2x_freexp_altinf"] = "unknown"

        df = VDemSelector(diagnostics=diagnostics).select(vdem_raw)

        assert np.isnan(df.loc[0, "v2x_freexp_altinf"])
        assert diagnostics.total("coerced_to_missing") == 1

    def test_bad_year(self, vdem_raw):
        vdem_raw.loc[1, "year"] = "c. 2001"
        with pytest.raises(ParseError):
            VDemSelector().select(vdem_raw)
