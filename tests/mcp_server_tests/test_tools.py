"""Tests for the MCP server tools module."""

import os
import sys
import json
import shutil
import tempfile
import pytest

# Add src and mcp-server to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../src')))
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../mcp-server')))

from tools import PillarTwoTools


# Path to the project root (holds input-parameters)
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '../..'))


@pytest.fixture(scope="module")
def test_base_path():
    """Create a temporary directory structure for testing.

    This creates a temp directory with:
    - input-parameters/ireland-2024/spec.json (copied from the project)
    - input-parameters/broken/spec.json (invalid JSON)
    - input-parameters/empty/ (no spec.json)
    """
    temp_dir = tempfile.mkdtemp()

    input_params_dir = os.path.join(temp_dir, 'input-parameters')
    os.makedirs(input_params_dir)
    shutil.copytree(
        os.path.join(PROJECT_ROOT, 'input-parameters', 'ireland-2024'),
        os.path.join(input_params_dir, 'ireland-2024')
    )
    os.makedirs(os.path.join(input_params_dir, 'broken'))
    with open(os.path.join(input_params_dir, 'broken', 'spec.json'), 'w') as f:
        f.write('{ not json')
    os.makedirs(os.path.join(input_params_dir, 'empty'))

    yield temp_dir

    # Cleanup
    shutil.rmtree(temp_dir, ignore_errors=True)


class TestScenarioDiscovery:
    """Tests for scenario discovery and execution."""

    @pytest.fixture
    def tools(self, test_base_path):
        return PillarTwoTools(test_base_path)

    def test_discovers_valid_scenarios_only(self, tools):
        assert list(tools.scenarios) == ['ireland-2024']
        assert tools.default_scenario == 'ireland-2024'

    def test_list_scenarios(self, tools):
        data = tools.list_scenarios()
        assert data['available_scenarios'] == ['ireland-2024']
        assert data['tools'] == {'ireland-2024': 'globe'}

    def test_run_default_scenario(self, tools):
        data = tools.run_scenario()
        assert data['name'] == 'ireland-2024'
        assert data['result']['status'] == 'TOP_UP_DUE'

    def test_run_unknown_scenario(self, tools):
        with pytest.raises(ValueError):
            tools.run_scenario('nonexistent')

    def test_reload_picks_up_new_scenario(self, test_base_path):
        tools = PillarTwoTools(test_base_path)
        new_dir = os.path.join(test_base_path, 'input-parameters', 'dfe-demo')
        os.makedirs(new_dir)
        try:
            with open(os.path.join(new_dir, 'spec.json'), 'w') as f:
                json.dump({'tool': 'dfe', 'inputs': {'caseStudy': True}}, f)
            data = tools.reload_scenarios()
            assert data['reloaded']
            assert 'dfe-demo' in data['available_scenarios']
        finally:
            shutil.rmtree(new_dir, ignore_errors=True)

    def test_missing_input_parameters(self, tmp_path):
        tools = PillarTwoTools(str(tmp_path))
        assert tools.scenarios == {}
        assert tools.default_scenario is None

    def test_project_scenarios(self):
        tools = PillarTwoTools(PROJECT_ROOT)
        for name in tools.scenarios:
            assert tools.run_scenario(name)['tool'] == tools.scenarios[name]['tool']


class TestReferenceTools:
    @pytest.fixture
    def tools(self, tmp_path):
        return PillarTwoTools(str(tmp_path))

    def test_list_jurisdictions(self, tools):
        data = tools.list_jurisdictions()
        uk = next(j for j in data['jurisdictions'] if j['code'] == 'UK')
        assert uk['filing_authority'] == 'HMRC'

    def test_full_rate_schedule(self, tools):
        data = tools.get_rate_schedule()
        assert data['sbie'][0] == {'year': 2024, 'payroll_rate': 9.8, 'asset_rate': 7.8}
        assert data['sbie'][-1]['year'] == 2033
        assert [r['rate'] for r in data['transition_rates']] == [15.0, 16.0, 17.0]
        assert data['de_minimis']['revenue_threshold'] == 10_000_000

    def test_rate_schedule_clamps_year(self, tools):
        data = tools.get_rate_schedule(2040)
        assert data['sbie'] == {'payroll_rate': 5.0, 'asset_rate': 5.0}
        assert data['transition_rate'] == 17.0

    def test_search_data_points(self, tools):
        data = tools.search_data_points('fiscal year', limit=2)
        assert [m['id'] for m in data['matches']] == ['S1.2.1', 'S1.2.2']
        assert data['matches'][0]['required'] == 'Yes'


class TestCalculatorTools:
    @pytest.fixture
    def tools(self, tmp_path):
        return PillarTwoTools(str(tmp_path))

    def test_calculate_globe_applies_qdmtt(self, tools):
        data = tools.calculate_globe({'fani': 10_000_000, 'currentTax': 1_000_000, 'qdmtt': 500_000})
        assert data['errors'] == {}
        assert data['result']['gross_top_up'] == pytest.approx(500_000)
        assert data['result']['net_top_up'] == 0
        assert data['result']['status'] == 'QDMTT_OFFSET'
        assert data['result']['etr_status'] == 'LOW_TAXED'

    def test_calculate_globe_rejects_unknown_entry_fields(self, tools):
        data = tools.calculate_globe({'fani': 10_000_000, 'currentTax': 1_000_000, 'qdmttPaid': 500_000})
        assert data['errors'] == {'entry': 'Unknown entry fields: qdmttPaid'}
        assert data['result'] is None

    def test_calculate_globe_steps(self, tools):
        data = tools.calculate_globe_steps('32,800,000', '3,600,000', '19,000,000', '17,000,000',
                                           mne_name='GlobalTech', jurisdiction='IE')
        assert data['errors'] == {}
        assert data['result']['step1']['etr'] == 10.98
        assert data['result']['step3']['status'] == 'TOP_UP_DUE'

    def test_assess_safe_harbour(self, tools):
        data = tools.assess_safe_harbour(
            de_minimis={'totalRevenue': '8,000,000', 'profitBeforeTax': '500,000'},
            fiscal_year='2024',
        )
        assert data['result']['overall_qualifies']
        assert data['result']['qualifying_test'] == 'de_minimis'

    def test_calculate_filing_deadline_validation(self, tools):
        data = tools.calculate_filing_deadline('', '2024-12-31', 'UK', 'UK')
        assert data['errors'] == {'mne': 'MNE Group Name is required'}
        assert data['result'] is None

    def test_calculate_gir_case_study(self, tools):
        data = tools.calculate_gir(case_study='CS1', add_missing_jurisdictions=True)
        report = data['result']
        assert [r['jurisdiction'] for r in report['results']] == ['IE', 'GB', 'DE', 'FR']
        assert report['validation']['jurisdiction_match']

    def test_calculate_gir_unknown_case_study(self, tools):
        with pytest.raises(ValueError):
            tools.calculate_gir(case_study='CS9')

    def test_assess_dfe_inline(self, tools):
        data = tools.assess_dfe(
            mne_info={'mneGroupName': 'Acme', 'fiscalYear': 2025},
            candidates=[
                {'id': 'a', 'entityName': 'Acme NL', 'pillarTwoStatus': 'FULL', 'taxTeamSize': 1},
                {'id': 'b', 'entityName': 'Acme Holdings', 'isUPE': True, 'pillarTwoStatus': 'FULL',
                 'taxTeamSize': 6, 'systemsCapability': 'SAP', 'advisorSupport': 'BIG4'},
            ],
        )
        ranking = data['result']['ranking']
        assert [r['candidate']['id'] for r in ranking] == ['b', 'a']
        assert ranking[0]['status'] == 'RECOMMENDED'
        assert data['fiscal_year'] == '2025'

    def test_assess_audit_checklist_case_study(self, tools):
        data = tools.assess_audit_checklist(case_study=True, filter='CRITICAL', search='sbie')
        report = data['result']
        assert report['stats']['overall_status'] == 'INCOMPLETE'
        assert report['gaps']['critical'] == 7
        assert [i['id'] for i in report['items']] == ['S3-015']
        assert report['item_states']['S3-009']['notes'] == 'Waiting on Switzerland tax team'


class TestSavedWork:
    @pytest.fixture
    def tools(self, tmp_path):
        return PillarTwoTools(str(tmp_path))

    @pytest.mark.asyncio
    async def test_save_normalises_and_updates(self, tools):
        saved = await tools.save_work('globe-calculator', {
            'mneName': 'GlobalTech', 'jurisdiction': 'IE', 'fiscalYear': 2024,
            's1Data': {'income': '100', 'taxes': '10'},
            's1Result': {'etr': 10.0, 'topUpPct': 5.0, 'status': 'LOW_TAXED'},
        })
        record = await tools.load_work('globe-calculator', saved['id'])
        assert record['mne_name'] == 'GlobalTech'
        assert record['fiscal_year'] == '2024'
        assert record['s1_result']['top_up_pct'] == 5.0
        assert record['s2_result'] is None

        record['jurisdiction'] = 'NL'
        again = await tools.save_work('globe-calculator', record)
        assert again['id'] == saved['id']
        assert len(tools.list_saved_work('globe-calculator')['records']) == 1

    @pytest.mark.asyncio
    async def test_unknown_tool_id(self, tools):
        with pytest.raises(ValueError):
            await tools.save_work('payroll', {})
        with pytest.raises(ValueError):
            tools.list_saved_work('payroll')

    @pytest.mark.asyncio
    async def test_delete(self, tools):
        saved = await tools.save_work('gir-practice-form', {'name': 'Practice', 'section1': {}})
        await tools.delete_work('gir-practice-form', saved['id'])
        assert tools.list_saved_work('gir-practice-form')['records'] == []

    @pytest.mark.asyncio
    async def test_audit_checklist_keeps_item_ids(self, tools):
        saved = await tools.save_work('audit-file-checklist', {
            'name': 'Acme - FY2025',
            'metadata': {'entityName': 'Acme', 'fiscalYear': 2025, 'sectionsIncluded': {'safeHarbour': False}},
            'itemStates': {'S3-009': {'status': 'IN_PROGRESS', 'notes': 'Chasing'}},
        })
        record = await tools.load_work('audit-file-checklist', saved['id'])
        assert record['item_states'] == {'S3-009': {'status': 'IN_PROGRESS', 'notes': 'Chasing'}}
        assert record['metadata']['sections_included']['safeHarbour'] is False
        assert record['metadata']['sections_included']['controls'] is True
