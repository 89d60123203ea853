# pyright: reportTypedDictNotRequiredAccess=false

from mypy_boto3_ec2.client import EC2Client


def get_root_device_name(client: EC2Client, image_id: str) -> str:
    response = client.describe_images(ImageIds=[image_id])
    images = response['Images']
    if len(images) == 0:
        raise Exception(f"Image {image_id} not found")

    device_name = images[0]['RootDeviceName']
    assert type(device_name) is str
    return device_name
