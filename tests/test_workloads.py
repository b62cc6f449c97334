import numpy as np
import pytest

from npukit.workloads import (
    ConvCase,
    Dialect,
    MatmulCase,
    conv_case,
    conv_inputs,
    main,
    matmul_case,
    matmul_inputs,
)


def test_matmul_case_smallest_and_largest():
    assert matmul_case(1) == MatmulCase(index=1, i=32, k=32, j=32)
    assert matmul_case(6) == MatmulCase(index=6, i=1024, k=1024, j=1024)


@pytest.mark.parametrize("index", range(1, 7))
def test_matmul_cases_are_square(index):
    case = matmul_case(index)
    assert case.i == case.k == case.j
    assert case.index == index


@pytest.mark.parametrize("index", [0, 7, -1])
def test_matmul_case_rejects_unknown(index):
    with pytest.raises(ValueError, match="wrong matmul"):
        matmul_case(index)


def test_conv_case_first():
    assert conv_case(1) == ConvCase(
        index=1, batch_size=1, in_channels=1, out_channels=1,
        in_dim=256, kernel_dim=3, out_dim=254,
    )
    assert conv_case(6).kernel_dim == 13
    assert conv_case(6).out_dim == 244


@pytest.mark.parametrize("index", range(1, 7))
def test_conv_out_dim_matches_valid_convolution(index):
    case = conv_case(index)
    assert case.out_dim == case.in_dim - case.kernel_dim + 1


@pytest.mark.parametrize("index", [0, 7])
def test_conv_case_rejects_unknown(index):
    with pytest.raises(ValueError, match="wrong conv"):
        conv_case(index)


def test_matmul_inputs_linalg():
    case = matmul_case(1)
    lhs, rhs, out = matmul_inputs(case, Dialect.LINALG)
    assert lhs.shape == (case.i, case.k)
    assert rhs.shape == (case.k, case.j)
    assert out.shape == (case.i, case.j)
    assert lhs.dtype == np.int8 and np.all(lhs == 1)
    assert np.all(rhs == 2)
    assert np.all(out == 0)


def test_matmul_inputs_gemmini():
    case = matmul_case(2)
    lhs, rhs, out, bias = matmul_inputs(case, Dialect.GEMMINI)
    for arr in (lhs, rhs, out, bias):
        assert arr.shape == (case.i, case.k)
    assert bias.dtype == np.int32 and np.all(bias == 0)
    assert np.all(lhs == 1) and np.all(rhs == 2)


def test_inputs_reject_no_dialect():
    with pytest.raises(ValueError):
        matmul_inputs(matmul_case(1), Dialect.NONE)
    with pytest.raises(ValueError):
        conv_inputs(conv_case(1), Dialect.NONE)


def test_conv_inputs_linalg():
    case = conv_case(2)
    image, weights, out = conv_inputs(case, Dialect.LINALG)
    assert image.shape == (1, 1, case.in_dim, case.in_dim)
    assert weights.shape == (1, 1, case.kernel_dim, case.kernel_dim)
    assert out.shape == (1, 1, case.out_dim, case.out_dim)
    assert np.all(image == 1) and np.all(weights == 1) and np.all(out == 0)


def test_conv_inputs_gemmini():
    case = conv_case(3)
    image, weights, bias, out = conv_inputs(case, Dialect.GEMMINI)
    assert image.shape == (1, case.in_dim, case.in_dim, 1)
    assert weights.shape == (case.kernel_dim * case.kernel_dim, 1)
    assert bias.shape == (case.out_channels,) and bias.dtype == np.int32
    assert out.shape == (case.out_dim * case.out_dim, 1)


def test_main_linalg_matmul(capsys):
    assert main(["--matmul", "1", "--dialect", "linalg"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "The linalg.matmul test case is 1"
    assert lines[1] == "I = 32 K = 32 J = 32"
    assert len(lines) == 3


def test_main_gemmini_conv(capsys):
    assert main(["--conv", "1", "--dialect", "gemmini"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "The gemmini.conv test case is 1"
    assert "KERNEL_DIM = 3 OUT_DIM = 254" in lines[1]


def test_main_matmul_takes_precedence(capsys):
    main(["--matmul", "1", "--conv", "1"])
    out = capsys.readouterr().out
    assert "matmul" in out
    assert "conv" not in out


def test_main_wrong_case(capsys):
    assert main(["--matmul", "7"]) == 0
    assert capsys.readouterr().out.strip() == "You specify the wrong matmul test case."


def test_main_without_workload_prints_nothing(capsys):
    assert main([]) == 0
    assert capsys.readouterr().out == ""