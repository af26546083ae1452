from rest_framework import status
from rest_framework.test import APITestCase

from utils.enums import ProductionOrderStatusChoices, StageStatusChoices
from ..material_return_service import MaterialReturnService
from ..stage_service import StageExecutionService
from ..workflow_service import MaterialWorkflowService
from .helpers import WorkflowFixturesMixin, planning_window


class ManufacturingAPITestBase(WorkflowFixturesMixin, APITestCase):

    def setUp(self):
        self.create_fixtures()
        start, end = planning_window()
        self.start, self.end = start, end
        self.order = StageExecutionService.create_production_order(
            self.planner, 'Crew Neck Tee', 100, start, end, stages=['cutting', 'stitching']
        )
        self.cutting = self.order.stages.get(stage_name='cutting')
        self.stitching = self.order.stages.get(stage_name='stitching')


class MaterialChainAPITest(ManufacturingAPITestBase):

    def test_receipt_endpoint(self):
        _, dispatch = self.dispatch_materials()
        self.client.force_authenticate(user=self.planner)
        response = self.client.post('/api/manufacturing/receipts/', {
            'dispatch_id': dispatch.pk,
            'received_materials': [{'inventory_id': self.fabric.pk, 'quantity_received': '200'}],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['receipt_number'].startswith('MRN-RCV-'))

    def test_second_receipt_for_dispatch_is_400(self):
        _, dispatch = self.dispatch_materials()
        self.client.force_authenticate(user=self.planner)
        payload = {
            'dispatch_id': dispatch.pk,
            'received_materials': [{'inventory_id': self.fabric.pk, 'quantity': '200'}],
        }
        self.client.post('/api/manufacturing/receipts/', payload, format='json')
        response = self.client.post('/api/manufacturing/receipts/', payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_state')

    def test_inventory_cannot_verify(self):
        self.client.force_authenticate(user=self.store)
        response = self.client.post('/api/manufacturing/verifications/', {
            'receipt_id': 1, 'overall_result': 'passed',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_qa_verifies_receipt(self):
        _, dispatch = self.dispatch_materials()
        receipt = MaterialWorkflowService.create_receipt(
            self.planner, dispatch.pk, [{'inventory_id': self.fabric.pk, 'quantity': 200}]
        )
        self.client.force_authenticate(user=self.qa)
        response = self.client.post('/api/manufacturing/verifications/', {
            'receipt_id': receipt.pk, 'overall_result': 'passed', 'verification_checklist': {'gsm': True},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['overall_result'], 'passed')

    def test_approval_and_start_production(self):
        _, verification = self.verified_materials()
        self.client.force_authenticate(user=self.planner)
        response = self.client.post('/api/manufacturing/approvals/', {
            'verification_id': verification.pk,
            'approval_status': 'approved',
            'material_allocations': [{'inventory_id': self.fabric.pk, 'quantity_allocated': '200'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(
            f"/api/manufacturing/approvals/{response.data['id']}/start_production/",
            {'production_order_id': self.order.pk}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['production_started'])


class StageAPITest(ManufacturingAPITestBase):

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.planner)

    def stage_url(self, stage, action):
        return f'/api/manufacturing/stages/{stage.pk}/{action}/'

    def test_start_and_complete(self):
        response = self.client.post(self.stage_url(self.cutting, 'start'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], StageStatusChoices.IN_PROGRESS)

        response = self.client.post(self.stage_url(self.cutting, 'complete'), {
            'quantity_processed': 100, 'quantity_approved': 96, 'quantity_rejected': 4,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], StageStatusChoices.COMPLETED)

        response = self.client.get(f'/api/manufacturing/production-orders/{self.order.pk}/')
        self.assertEqual(response.data['progress_percentage'], 50)
        self.assertEqual(response.data['status'], ProductionOrderStatusChoices.IN_PROGRESS)

    def test_out_of_order_start_is_400(self):
        response = self.client.post(self.stage_url(self.stitching, 'start'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_state')
        self.assertIn('cutting', response.data['error'])

    def test_quantity_violation_is_400(self):
        self.client.post(self.stage_url(self.cutting, 'start'))
        response = self.client.post(self.stage_url(self.cutting, 'complete'), {
            'quantity_processed': 10, 'quantity_approved': 8, 'quantity_rejected': 3,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')

    def test_missing_stage_is_404(self):
        response = self.client.post('/api/manufacturing/stages/9999/start/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_sales_cannot_move_stages(self):
        self.client.force_authenticate(user=self.sales_user)
        response = self.client.post(self.stage_url(self.cutting, 'start'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_qa_can_rework_but_not_start(self):
        self.client.force_authenticate(user=self.qa)
        self.assertEqual(
            self.client.post(self.stage_url(self.cutting, 'start')).status_code, status.HTTP_403_FORBIDDEN
        )

        StageExecutionService.start_stage(self.planner, self.cutting.pk)
        response = self.client.post(self.stage_url(self.cutting, 'rework'), {
            'failure_reason': 'Notch misaligned', 'failed_quantity': 5,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['rework_iteration'], 2)

    def test_approve_returns_next_stage(self):
        StageExecutionService.start_stage(self.planner, self.cutting.pk)
        checkpoint = self.cutting.quality_checkpoints.get()

        self.client.force_authenticate(user=self.qa)
        response = self.client.post(
            f'/api/manufacturing/checkpoints/{checkpoint.pk}/record_result/', {'result': 'passed'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(self.stage_url(self.cutting, 'approve'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stage']['status'], StageStatusChoices.COMPLETED)
        self.assertEqual(response.data['next_stage']['id'], self.stitching.pk)

    def test_log_rejections_endpoint(self):
        StageExecutionService.start_stage(self.planner, self.cutting.pk)
        StageExecutionService.complete_stage(
            self.planner, self.cutting.pk, quantity_processed=100, quantity_approved=97, quantity_rejected=3
        )
        self.client.force_authenticate(user=self.qa)
        response = self.client.post(self.stage_url(self.cutting, 'log_rejections'), {
            'rejections': [{'rejection_reason': 'Fabric hole', 'rejected_quantity': 3, 'severity': 'major'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get(f'/api/manufacturing/production-orders/{self.order.pk}/rejections/')
        self.assertEqual(len(response.data), 1)

    def test_unfreeze_endpoint(self):
        response = self.client.post(
            f'/api/manufacturing/production-orders/{self.order.pk}/unfreeze/', {'reason': 'Approved delay'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['unfrozen_stages'], 0)

    def test_unfreeze_without_reason_is_400(self):
        response = self.client.post(
            f'/api/manufacturing/production-orders/{self.order.pk}/unfreeze/', {}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_production_order(self):
        response = self.client.post('/api/manufacturing/production-orders/', {
            'product_name': 'Polo Shirt',
            'quantity': 250,
            'planned_start_date': self.start.isoformat(),
            'planned_end_date': self.end.isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['stages']), 6)


class MaterialReturnAPITest(ManufacturingAPITestBase):

    def finish_all_stages(self):
        for stage in (self.cutting, self.stitching):
            StageExecutionService.start_stage(self.planner, stage.pk)
            StageExecutionService.complete_stage(self.planner, stage.pk, quantity_processed=100, quantity_approved=100)

    def test_return_before_completion_is_400(self):
        self.client.force_authenticate(user=self.planner)
        response = self.client.post('/api/manufacturing/material-returns/', {
            'production_order_id': self.order.pk,
            'materials': [{'inventory_id': self.fabric.pk, 'quantity': '5'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_state')

    def test_duplicate_return_is_409(self):
        self.finish_all_stages()
        self.client.force_authenticate(user=self.planner)
        payload = {
            'production_order_id': self.order.pk,
            'materials': [{'inventory_id': self.fabric.pk, 'quantity': '5'}],
        }
        self.assertEqual(
            self.client.post('/api/manufacturing/material-returns/', payload, format='json').status_code,
            status.HTTP_201_CREATED
        )
        response = self.client.post('/api/manufacturing/material-returns/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'duplicate')

    def test_inventory_reviews_returns(self):
        self.finish_all_stages()
        material_return = MaterialReturnService.request_return(
            self.planner, self.order.pk, [{'inventory_id': self.fabric.pk, 'quantity': 5}]
        )

        self.client.force_authenticate(user=self.planner)
        response = self.client.post(f'/api/manufacturing/material-returns/{material_return.pk}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.store)
        response = self.client.post(f'/api/manufacturing/material-returns/{material_return.pk}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post(f'/api/manufacturing/material-returns/{material_return.pk}/process/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'returned')
