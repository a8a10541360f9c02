from lifeflow import create_app
from lifeflow.utils.scheduler import run_expiry_sweep


def expire_requests():
    app = create_app()
    expired_requests, expired_contacts = run_expiry_sweep(app)
    print(f"Expired {expired_requests} blood requests")
    print(f"Expired {expired_contacts} contact requests")


if __name__ == '__main__':
    expire_requests()
