"""
Tests for price CSV loading and normalization.
"""
import numpy as np
import pandas as pd
import pytest

from wflab.data.loader import (
    PriceDataError,
    PriceLoader,
    normalize_columns,
    slice_frame,
    to_weekly,
)


def write_prices(path, start='2021-01-04', periods=10, columns=('Open', 'High', 'Low', 'Close', 'Volume')):
    dates = pd.date_range(start, periods=periods, freq='B')
    closes = 100 + np.arange(periods, dtype=float)
    data = {
        columns[0]: closes - 0.5,
        columns[1]: closes + 1,
        columns[2]: closes - 1,
        columns[3]: closes,
    }
    if len(columns) > 4:
        data[columns[4]] = 1000.0
    df = pd.DataFrame(data, index=dates)
    df.index.name = 'Date'
    df.to_csv(path)
    return df


@pytest.fixture
def data_dir(tmp_path):
    write_prices(tmp_path / "AAA.csv")
    write_prices(tmp_path / "BBB.csv", start='2021-01-11', periods=5)
    return tmp_path


class TestNormalizeColumns:
    def test_case_insensitive(self):
        df = pd.DataFrame({'open': [1], 'HIGH': [2], 'low': [0.5], 'close': [1.5], 'volume': [10]})
        assert list(normalize_columns(df).columns) == ['Open', 'High', 'Low', 'Close', 'Volume']

    def test_missing_volume_is_zero(self):
        df = pd.DataFrame({'Open': [1], 'High': [2], 'Low': [0.5], 'Close': [1.5]})
        assert normalize_columns(df)['Volume'].tolist() == [0.0]

    def test_extra_columns_dropped(self):
        df = pd.DataFrame({'Open': [1], 'High': [2], 'Low': [0.5], 'Close': [1.5], 'Adj Close': [1.4]})
        assert 'Adj Close' not in normalize_columns(df).columns

    def test_missing_required_column(self):
        df = pd.DataFrame({'Open': [1], 'High': [2], 'Close': [1.5]})
        with pytest.raises(PriceDataError, match="Low"):
            normalize_columns(df)


class TestSliceFrame:
    def test_inclusive_bounds(self):
        df = pd.DataFrame({'Close': range(5)}, index=pd.date_range('2021-01-01', periods=5))
        sliced = slice_frame(df, '2021-01-02', '2021-01-04')
        assert sliced['Close'].tolist() == [1, 2, 3]

    def test_open_bounds(self):
        df = pd.DataFrame({'Close': range(5)}, index=pd.date_range('2021-01-01', periods=5))
        assert len(slice_frame(df)) == 5


class TestToWeekly:
    def test_weekly_bars(self):
        df = pd.DataFrame({
            'Open': [1.0, 2, 3, 4, 5, 6],
            'High': [10.0, 20, 30, 40, 50, 60],
            'Low': [0.5, 1, 2, 3, 4, 5],
            'Close': [1.5, 2.5, 3.5, 4.5, 5.5, 6.5],
            'Volume': [1.0] * 6,
        }, index=pd.date_range('2021-01-04', periods=6, freq='B'))  # Mon..Fri, Mon
        weekly = to_weekly(df)
        assert len(weekly) == 2
        first = weekly.iloc[0]
        assert (first['Open'], first['High'], first['Low'], first['Close'], first['Volume']) == (1, 50, 0.5, 5.5, 5)
        assert weekly.index[0] == pd.Timestamp('2021-01-08')


class TestPriceLoader:
    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PriceLoader(tmp_path / "nope")

    def test_list_symbols(self, data_dir):
        assert PriceLoader(data_dir).list_symbols() == ["AAA", "BBB"]

    def test_load(self, data_dir):
        df = PriceLoader(data_dir).load("AAA")
        assert isinstance(df.index, pd.DatetimeIndex)
        assert list(df.columns) == ['Open', 'High', 'Low', 'Close', 'Volume']
        assert len(df) == 10
        assert df.index.is_monotonic_increasing

    def test_load_date_range(self, data_dir):
        df = PriceLoader(data_dir).load("AAA", '2021-01-05', '2021-01-07')
        assert len(df) == 3

    def test_unsorted_duplicates(self, tmp_path):
        df = write_prices(tmp_path / "X.csv", periods=4)
        shuffled = pd.concat([df.iloc[[2, 0, 3, 1]], df.iloc[[1]].assign(Close=999.0)])
        shuffled.to_csv(tmp_path / "X.csv")
        loaded = PriceLoader(tmp_path).load("X")
        assert loaded.index.is_monotonic_increasing
        assert len(loaded) == 4
        assert loaded['Close'].iloc[1] == 999.0

    def test_weekly(self, data_dir):
        df = PriceLoader(data_dir).load("AAA", timeframe="weekly")
        assert len(df) == 2

    def test_bad_timeframe(self, data_dir):
        with pytest.raises(ValueError):
            PriceLoader(data_dir).load("AAA", timeframe="hourly")

    def test_missing_symbol(self, data_dir):
        with pytest.raises(FileNotFoundError):
            PriceLoader(data_dir).load("ZZZ")

    def test_universe_skips_bad_files(self, data_dir):
        (data_dir / "BAD.csv").write_text("Date,Foo\n2021-01-04,1\n")
        universe = PriceLoader(data_dir).load_universe()
        assert sorted(universe) == ["AAA", "BBB"]

    def test_universe_drops_empty_range(self, data_dir):
        universe = PriceLoader(data_dir).load_universe(start_date='2021-01-16')
        assert sorted(universe) == []

    def test_universe_symbols(self, data_dir):
        universe = PriceLoader(data_dir).load_universe(["BBB", "MISSING"])
        assert list(universe) == ["BBB"]
