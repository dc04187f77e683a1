from cpi import cloud_factory



def main():
    # Example usage of the CPI factory
    config = {
        "aws": {
            "aws_access_key_id": "AKIAEXAMPLE",
            "aws_secret_access_key": "wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEY",
            "region_name": "us-east-1",
        },
        "registry": {"endpoint": "http://registry:3333"},
        "agent": {"mbus": "nats://nats:4222"},
    }
    cloud = cloud_factory("aws", config)

    instance_id = cloud.create_vm(
        "agent-1",
        "ami-0123456789abcdef0",
        {"instance_type": "m3.medium", "key_name": "bosh"},
        {
            "default": {"type": "dynamic", "dns": ["10.0.0.2"]},
            "public": {"type": "vip", "ip": "54.0.0.10"},
        },
    )
    print(f"Created instance: {instance_id}")

if __name__ == "__main__":
    main()
