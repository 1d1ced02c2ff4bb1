"""Tests for the mygene homolog lookup.

Uses mocked mygene responses to avoid real API calls.
"""

from unittest.mock import MagicMock, patch

import httpx
import pytest
from requests.exceptions import ConnectionError as RequestsConnectionError

from gwas_module_pipeline.config.schema import PipelineConfig
from gwas_module_pipeline.gene_mapping import (
    LOOKUP_SCHEMA,
    HomologLookup,
    HomologLookupError,
)


# Mock mygene response fixtures

MOCK_HOMOLOGENE_RESPONSE = {
    'out': [
        {
            'query': 'BDNF',
            '_id': '627',
            'homologene': {
                'id': 7245,
                'genes': [[9606, 627], [10090, 12064], [10116, 24225]],
            },
        },
        {
            'query': 'CACNA1C',
            '_id': '775',
            'homologene': {
                'id': 55484,
                'genes': [[9606, 775], [10090, 12288]],
            },
        },
        {
            'query': 'NOVEL1',
            'notfound': True,
        },
        {
            'query': 'HUMANONLY',
            '_id': '999',
            'homologene': {'id': 1, 'genes': [[9606, 999]]},
        },
    ],
    'missing': ['NOVEL1'],
}

MOCK_TARGET_RESPONSE = {
    'out': [
        {
            'query': '12064',
            'symbol': 'Bdnf',
            'alias': ['Bdnf-ps', 'BDNF1'],
            'reporter': {
                'Mouse430_2': ['1422168_a_at', '1422169_a_at'],
                'MG-U74Av2': '96217_at',
            },
        },
        {
            'query': '12288',
            'symbol': 'Cacna1c',
            'alias': 'Cav1.2',
            'reporter': {'MG-U74Av2': '93986_at'},
        },
    ],
    'missing': [],
}


def mock_querymany(*responses):
    mock_mg = MagicMock()
    mock_mg.querymany.side_effect = list(responses)
    return mock_mg


def test_lookup_homologs_two_step():
    """Symbols map to mouse gene IDs, then to one row per probe."""
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = mock_querymany(MOCK_HOMOLOGENE_RESPONSE, MOCK_TARGET_RESPONSE)
        mock_mygene.return_value = mock_mg

        lookup = HomologLookup(max_retries=1)
        result = lookup.lookup_homologs(['BDNF', 'CACNA1C', 'NOVEL1', 'HUMANONLY'])

    assert dict(result.schema) == LOOKUP_SCHEMA
    assert result.rows() == [
        ('BDNF', '12064', 'Bdnf', 'Bdnf-ps', '1422168_a_at'),
        ('BDNF', '12064', 'Bdnf', 'Bdnf-ps', '1422169_a_at'),
        ('CACNA1C', '12288', 'Cacna1c', 'Cav1.2', None),
    ]


def test_lookup_is_batched():
    """Each step is a single querymany call with the full ID list."""
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = mock_querymany(MOCK_HOMOLOGENE_RESPONSE, MOCK_TARGET_RESPONSE)
        mock_mygene.return_value = mock_mg

        HomologLookup(max_retries=1).lookup_homologs(
            ['BDNF', 'CACNA1C', 'BDNF', 'NOVEL1', 'HUMANONLY']
        )

    assert mock_mg.querymany.call_count == 2

    first, second = mock_mg.querymany.call_args_list
    assert first.args[0] == ['BDNF', 'CACNA1C', 'NOVEL1', 'HUMANONLY']
    assert first.kwargs['scopes'] == 'symbol'
    assert first.kwargs['fields'] == 'homologene'
    assert first.kwargs['species'] == 9606
    assert second.args[0] == ['12064', '12288']
    assert second.kwargs['scopes'] == 'entrezgene'
    assert second.kwargs['species'] == 10090


def test_probe_platform_selects_reporter():
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mygene.return_value = mock_querymany(
            MOCK_HOMOLOGENE_RESPONSE, MOCK_TARGET_RESPONSE
        )

        result = HomologLookup(probe_platform='MG-U74Av2', max_retries=1).lookup_homologs(
            ['BDNF', 'CACNA1C']
        )

    assert result['target_probe_id'].to_list() == ['96217_at', '93986_at']


def test_alt_symbol_defaults_to_symbol():
    target = {'out': [{'query': '12064', 'symbol': 'Bdnf', 'reporter': {'Mouse430_2': 'p1'}}]}

    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mygene.return_value = mock_querymany(MOCK_HOMOLOGENE_RESPONSE, target)

        result = HomologLookup(max_retries=1).lookup_homologs(['BDNF'])

    assert result.row(0) == ('BDNF', '12064', 'Bdnf', 'Bdnf', 'p1')


def test_no_homologs_skips_second_query():
    response = {'out': [{'query': 'NOVEL1', 'notfound': True}]}

    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = mock_querymany(response)
        mock_mygene.return_value = mock_mg

        result = HomologLookup(max_retries=1).lookup_homologs(['NOVEL1'])

    assert result.height == 0
    assert mock_mg.querymany.call_count == 1


def test_empty_input_does_not_call_service():
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mygene.return_value = mock_mg

        result = HomologLookup(max_retries=1).lookup_homologs([])

    assert result.height == 0
    assert result.columns == list(LOOKUP_SCHEMA)
    mock_mg.querymany.assert_not_called()


def test_unreachable_service_raises_lookup_error():
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mg.querymany.side_effect = RequestsConnectionError("connection refused")
        mock_mygene.return_value = mock_mg

        with pytest.raises(HomologLookupError, match="unreachable"):
            HomologLookup(max_retries=1).lookup_homologs(['BDNF'])


def test_httpx_connect_error_raises_lookup_error():
    """Current mygene clients fail with httpx errors, not requests errors."""
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mg.querymany.side_effect = httpx.ConnectError("connection refused")
        mock_mygene.return_value = mock_mg

        with pytest.raises(HomologLookupError, match="unreachable") as excinfo:
            HomologLookup(max_retries=1).lookup_homologs(['BDNF'])

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert mock_mg.querymany.call_count == 1


def test_malformed_response_raises_lookup_error():
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mygene.return_value = mock_querymany(['not', 'a', 'dict'])

        with pytest.raises(HomologLookupError, match="Malformed"):
            HomologLookup(max_retries=1).lookup_homologs(['BDNF'])


def test_malformed_hit_raises_lookup_error():
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mygene.return_value = mock_querymany({'out': ['BDNF']})

        with pytest.raises(HomologLookupError):
            HomologLookup(max_retries=1).lookup_homologs(['BDNF'])


def test_from_config(tmp_path):
    config = PipelineConfig(
        data_dir=tmp_path / "data",
        output_dir=tmp_path / "output",
        duckdb_path=tmp_path / "pipeline.duckdb",
        versions={"network_name": "net", "probe_platform": "MG-U74Av2"},
        homolog={"target_species": 10116},
        api={"max_retries": 2},
    )

    with patch('mygene.MyGeneInfo'):
        lookup = HomologLookup.from_config(config)

    assert lookup.source_species == 9606
    assert lookup.target_species == 10116
    assert lookup.probe_platform == 'MG-U74Av2'
    assert lookup.max_retries == 2
